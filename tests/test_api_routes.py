"""
End-to-end tests of the JSON blueprints through the Flask test client.
"""
import io
from datetime import date
from decimal import Decimal

import pytest

from extensions import db
from models.activities import Activity
from models.categories import Category, CategoryBudget, Subcategory
from models.expenses import Expense
from models.family import Family
from models.people import Person
from models.planned import PlannedExpense


TODAY = date.today()
PERIOD = {'year': TODAY.year, 'month': TODAY.month}


@pytest.fixture
def payer(app, family):
    p = Person(family_id=family.id, name='Bruno')
    db.session.add(p)
    db.session.commit()
    return p


# ---------------------------------------------------------------------------
# Planned expenses
# ---------------------------------------------------------------------------

class TestPlannedRoutes:
    def _create(self, client, **overrides):
        body = {'name': 'Netflix', 'amount': 39.9, 'due_day': 31}
        body.update(overrides)
        resp = client.post('/planned/', json=body)
        assert resp.status_code == 201, resp.get_json()
        return resp.get_json()

    def test_create_validation(self, app, client):
        resp = client.post('/planned/', json={'name': '', 'amount': 0, 'due_day': 32})
        assert resp.status_code == 400
        assert set(resp.get_json()['fields']) == {'name', 'amount', 'due_day'}
        assert PlannedExpense.query.count() == 0

    def test_month_view_and_navigation(self, app, client):
        created = self._create(client)
        resp = client.get('/planned/', query_string=PERIOD)
        data = resp.get_json()

        assert resp.status_code == 200
        assert [r['planned_expense']['id'] for r in data['rows']] == [created['id']]
        assert data['rows'][0]['paid'] is False
        assert data['summary']['total_expected'] == pytest.approx(39.9)
        assert data['next']['month'] == (TODAY.month % 12) + 1

    def test_not_visible_before_creation_month(self, app, client):
        self._create(client)
        year, month = (TODAY.year - 1, 12) if TODAY.month == 1 else (TODAY.year, TODAY.month - 1)
        data = client.get('/planned/', query_string={'year': year, 'month': month}).get_json()
        assert data['rows'] == []

    def test_pay_and_unpay(self, app, client, payer):
        created = self._create(client)

        resp = client.post(f"/planned/{created['id']}/pay",
                           json=dict(PERIOD, paid_amount='35.00', person_id=payer.id))
        assert resp.status_code == 200
        payment = resp.get_json()
        assert payment['paid'] is True
        assert payment['paid_amount'] == 35.0

        expense = db.session.get(Expense, payment['expense_id'])
        assert expense.amount == Decimal('35.00')
        assert expense.person_id == payer.id

        row = client.get('/planned/', query_string=PERIOD).get_json()['rows'][0]
        assert row['paid'] is True
        assert row['amount'] == 39.9
        assert row['paid_amount'] == 35.0
        assert row['amount_differs'] is True
        assert row['paid_by']['name'] == 'Bruno'

        summary = client.get('/planned/', query_string=PERIOD).get_json()['summary']
        assert summary['total_paid'] == 35.0

        resp = client.post(f"/planned/{created['id']}/unpay", json=PERIOD)
        assert resp.status_code == 200
        assert resp.get_json()['paid'] is False
        assert Expense.query.count() == 0

    def test_pay_requires_payer(self, app, client):
        created = self._create(client)
        resp = client.post(f"/planned/{created['id']}/pay", json=dict(PERIOD, paid_amount=39.9))
        assert resp.status_code == 400
        assert 'person_id' in resp.get_json()['fields']
        assert Expense.query.count() == 0

    def test_double_pay_conflict(self, app, client, payer):
        created = self._create(client)
        body = dict(PERIOD, paid_amount=39.9, person_id=payer.id)
        assert client.post(f"/planned/{created['id']}/pay", json=body).status_code == 200
        resp = client.post(f"/planned/{created['id']}/pay", json=body)
        assert resp.status_code == 409
        assert Expense.query.count() == 1

    def test_unpay_unpaid_conflict(self, app, client):
        created = self._create(client)
        assert client.post(f"/planned/{created['id']}/unpay", json=PERIOD).status_code == 409

    def test_update_and_deactivate(self, app, client):
        created = self._create(client)
        resp = client.put(f"/planned/{created['id']}", json={'name': 'Netflix 4K', 'amount': '55.90', 'due_day': 5})
        assert resp.status_code == 200
        assert resp.get_json()['amount'] == 55.9

        resp = client.delete(f"/planned/{created['id']}")
        assert resp.status_code == 200
        assert resp.get_json()['active'] is False
        assert client.get('/planned/', query_string=PERIOD).get_json()['rows'] == []

    def test_other_household_planned_is_404(self, app, client):
        other = Family(name='Other')
        db.session.add(other)
        db.session.commit()
        theirs = PlannedExpense(family_id=other.id, name='Theirs', amount=Decimal('10'), due_day=1)
        db.session.add(theirs)
        db.session.commit()

        resp = client.put(f'/planned/{theirs.id}', json={'name': 'Mine now', 'amount': 1, 'due_day': 1})
        assert resp.status_code == 404


# ---------------------------------------------------------------------------
# Expense ledger
# ---------------------------------------------------------------------------

class TestExpenseRoutes:
    def test_crud(self, app, client, payer):
        resp = client.post('/expenses', json={
            'description': 'Supermercado', 'amount': '123.45', 'date': '2026-03-10', 'person_id': payer.id,
        })
        assert resp.status_code == 201
        expense_id = resp.get_json()['id']

        listing = client.get('/expenses', query_string={'year': 2026, 'month': 3}).get_json()
        assert [e['id'] for e in listing['expenses']] == [expense_id]
        assert listing['total'] == pytest.approx(123.45)

        resp = client.put(f'/expenses/{expense_id}', json={'description': 'Mercado', 'amount': 100})
        assert resp.status_code == 200
        assert resp.get_json()['date'] == '2026-03-10'

        assert client.delete(f'/expenses/{expense_id}').status_code == 200
        assert client.delete(f'/expenses/{expense_id}').status_code == 404

    def test_validation(self, app, client):
        resp = client.post('/expenses', json={'description': 'x', 'amount': -1, 'date': '10/03/2026'})
        assert resp.status_code == 400
        assert set(resp.get_json()['fields']) == {'amount', 'date'}

    def test_search_and_type_filter(self, app, client, family):
        fixed = Category(family_id=family.id, name='Escola', category_type='fixed')
        db.session.add(fixed)
        db.session.commit()
        client.post('/expenses', json={'description': 'Mensalidade', 'amount': 900, 'category_id': fixed.id})
        client.post('/expenses', json={'description': 'Pizza', 'amount': 80})

        found = client.get('/expenses', query_string={'q': 'escola'}).get_json()['expenses']
        assert [e['description'] for e in found] == ['Mensalidade']

        found = client.get('/expenses', query_string={'type': 'fixed'}).get_json()['expenses']
        assert [e['description'] for e in found] == ['Mensalidade']

        assert client.get('/expenses', query_string={'type': 'bogus'}).status_code == 400

    def test_import(self, app, client):
        csv_bytes = b'data,descricao,valor\n01/03/2026,Padaria,12.50\n,Sem data,3\n'
        resp = client.post('/expenses/import', data={'file': (io.BytesIO(csv_bytes), 'marco.csv')},
                           content_type='multipart/form-data')
        assert resp.status_code == 200
        assert resp.get_json() == {'success': 1, 'failed': 1,
                                   'errors': [{'row': 3, 'error': 'date, description and amount are required'}]}

    def test_import_requires_file(self, app, client):
        resp = client.post('/expenses/import', data={}, content_type='multipart/form-data')
        assert resp.status_code == 400

    def test_summary(self, app, client):
        client.post('/expenses', json={'description': 'Pizza', 'amount': 80, 'date': '2026-03-10'})
        data = client.get('/expenses/summary', query_string={'year': 2026, 'month': 3}).get_json()
        assert data['total'] == 80.0
        assert data['by_type'] == {'fixed': 0.0, 'variable': 0.0, 'uncategorized': 80.0}
        assert len(data['by_month']) == 12
        assert data['by_month'][2]['total'] == 80.0


# ---------------------------------------------------------------------------
# Categories, budgets and people
# ---------------------------------------------------------------------------

class TestCategoryRoutes:
    def test_create_list_update(self, app, client):
        resp = client.post('/categories/', json={'name': 'Escola', 'category_type': 'fixed'})
        assert resp.status_code == 201
        category_id = resp.get_json()['id']

        resp = client.post(f'/categories/{category_id}/subcategories', json={'name': 'Uniforme'})
        assert resp.status_code == 201

        listing = client.get('/categories/').get_json()
        assert listing[0]['name'] == 'Escola'
        assert [s['name'] for s in listing[0]['subcategories']] == ['Uniforme']

        resp = client.put(f'/categories/{category_id}', json={'name': 'Colegio', 'category_type': 'fixed'})
        assert resp.get_json()['name'] == 'Colegio'

    def test_invalid_type(self, app, client):
        resp = client.post('/categories/', json={'name': 'X', 'category_type': 'monthly'})
        assert resp.status_code == 400

    def test_delete_uncategorizes_expenses(self, app, client, family):
        category = Category(family_id=family.id, name='Lazer')
        db.session.add(category)
        db.session.flush()
        sub = Subcategory(family_id=family.id, category_id=category.id, name='Cinema')
        db.session.add(sub)
        db.session.flush()
        db.session.add(CategoryBudget(family_id=family.id, category_id=category.id, year=2026, month=3,
                                      amount=Decimal('100')))
        expense = Expense(family_id=family.id, date=date(2026, 3, 1), description='Filme',
                          amount=Decimal('40'), category_id=category.id, subcategory_id=sub.id)
        db.session.add(expense)
        db.session.commit()

        assert client.delete(f'/categories/{category.id}').status_code == 200

        assert db.session.get(Expense, expense.id).category_id is None
        assert db.session.get(Expense, expense.id).subcategory_id is None
        assert Subcategory.query.count() == 0
        assert CategoryBudget.query.count() == 0

    def test_budgets(self, app, client, family):
        category = Category(family_id=family.id, name='Supermercado')
        db.session.add(category)
        db.session.commit()
        client.post('/expenses', json={'description': 'Compra', 'amount': 900, 'date': '2026-03-02',
                                       'category_id': category.id})

        resp = client.put('/categories/budgets', json={'category_id': category.id, 'year': 2026, 'month': 3,
                                                       'amount': 1000})
        assert resp.status_code == 200

        budgets = client.get('/categories/budgets', query_string={'year': 2026, 'month': 3}).get_json()
        assert budgets[0]['amount'] == 1000.0

        progress = client.get('/categories/budgets/progress', query_string={'year': 2026, 'month': 3}).get_json()
        assert progress['variable'][0]['percentage'] == 90.0
        assert progress['variable'][0]['status'] == 'warning'


class TestPeopleRoutes:
    def test_crud_and_delete_unassigns(self, app, client):
        resp = client.post('/people/', json={'name': 'Carla', 'color': '#10B981'})
        assert resp.status_code == 201
        person_id = resp.get_json()['id']

        client.post('/expenses', json={'description': 'Farmacia', 'amount': 30, 'person_id': person_id})
        assert client.put(f'/people/{person_id}', json={'name': 'Carla S.'}).get_json()['name'] == 'Carla S.'

        assert client.delete(f'/people/{person_id}').status_code == 200
        assert Expense.query.one().person_id is None
        assert Person.query.count() == 0
        assert client.get('/people/').get_json() == []

    def test_name_required(self, app, client):
        assert client.post('/people/', json={'name': ''}).status_code == 400


# ---------------------------------------------------------------------------
# Dashboard, change polling and activity feed
# ---------------------------------------------------------------------------

class TestDashboardRoutes:
    def test_dashboard(self, app, client):
        client.post('/expenses', json={'description': 'Pizza', 'amount': 80})
        data = client.get('/dashboard', query_string=PERIOD).get_json()
        assert data['total'] == 80.0
        assert data['version'] == 1
        assert data['planned']['total_count'] == 0
        assert data['budgets'] == {'fixed': [], 'variable': []}

    def test_invalid_period(self, app, client):
        assert client.get('/dashboard', query_string={'year': 2026, 'month': 13}).status_code == 400

    def test_changes_polling(self, app, client):
        assert client.get('/dashboard/changes', query_string={'since': 0}).get_json() == {
            'version': 0, 'changed': False,
        }
        client.post('/expenses', json={'description': 'Pizza', 'amount': 80})
        assert client.get('/dashboard/changes', query_string={'since': 0}).get_json() == {
            'version': 1, 'changed': True,
        }

    def test_activity_feed(self, app, client, payer):
        client.post('/expenses', json={'description': 'Pizza', 'amount': 80, 'person_id': payer.id})
        feed = client.get('/activities').get_json()
        assert len(feed) == 1
        assert feed[0]['action'] == 'create'
        assert feed[0]['entity_type'] == 'Expense'
        assert feed[0]['person']['name'] == 'Bruno'
        assert Activity.query.count() == 1

    def test_unknown_route_is_json_404(self, app, client):
        resp = client.get('/nope')
        assert resp.status_code == 404
        assert 'error' in resp.get_json()
