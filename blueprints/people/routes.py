from flask import current_app, jsonify
from . import people_bp
from extensions import db
from models.activities import Activity
from models.expenses import Expense
from models.people import Person
from models.planned import PlannedExpensePayment
from services.activity_service import ActivityService
from utils.db_helpers import family_query, family_get_or_404, set_family_id
from utils.forms import validated_form
from .forms import PersonForm


@people_bp.route('/')
def index():
    people = family_query(Person).order_by(Person.name).all()
    return jsonify([p.to_dict() for p in people])


@people_bp.route('/', methods=['POST'])
def add():
    form = validated_form(PersonForm)
    person = set_family_id(Person(
        name=form.name.data.strip(),
        color=form.color.data or '#8B5CF6',
        avatar_url=form.avatar_url.data or None,
    ))
    db.session.add(person)
    db.session.commit()

    ActivityService.log_activity('create', 'Person', person.name)
    return jsonify(person.to_dict()), 201


@people_bp.route('/<int:id>', methods=['PUT'])
def edit(id):
    person = family_get_or_404(Person, id)
    form = validated_form(PersonForm)
    person.name = form.name.data.strip()
    person.color = form.color.data or person.color
    person.avatar_url = form.avatar_url.data or None
    db.session.commit()

    ActivityService.log_activity('update', 'Person', person.name)
    return jsonify(person.to_dict())


@people_bp.route('/<int:id>', methods=['DELETE'])
def delete(id):
    """Remove a member; their expenses, payments and activity entries become unassigned"""
    person = family_get_or_404(Person, id)
    for model in (Expense, PlannedExpensePayment, Activity):
        for row in family_query(model).filter_by(person_id=person.id).all():
            row.person_id = None

    name = person.name
    db.session.delete(person)
    db.session.commit()

    current_app.logger.info(f'Person {id} "{name}" deleted')
    ActivityService.log_activity('delete', 'Person', name)
    return jsonify({'success': True})
