"""
Request helpers shared by the JSON blueprints.

WTForms expects form-encoded input.  ``form_data`` flattens a JSON body into
the same ``MultiDict`` shape so one form class validates both kinds of
request, and ``validated_form`` turns validation failures into the
``ValidationError`` handled by the app-wide error handler.
"""
from datetime import date

from flask import request
from werkzeug.datastructures import CombinedMultiDict, MultiDict

from services.errors import ValidationError
from utils.periods import check_period


def form_data():
    """Incoming form fields, from a JSON body or a regular form post."""
    if request.is_json:
        payload = request.get_json(silent=True)
        if not isinstance(payload, dict):
            payload = {}
        data = MultiDict()
        for key, value in payload.items():
            if value is None:
                continue
            if isinstance(value, bool):
                # BooleanField treats any non-empty value as checked
                if value:
                    data.add(key, 'y')
                continue
            data.add(key, str(value))
        return data
    if request.files:
        return CombinedMultiDict([request.form, request.files])
    return request.form


def validated_form(form_class, **kwargs):
    """Build and validate *form_class* from the request or raise ``ValidationError``."""
    form = form_class(formdata=form_data(), **kwargs)
    if not form.validate():
        raise ValidationError('Validation failed', fields=form.errors)
    return form


def period_from_args(today=None):
    """``(year, month)`` from the query string, defaulting to the current month."""
    today = today or date.today()
    year = request.args.get('year', today.year, type=int)
    month = request.args.get('month', today.month, type=int)
    check_period(year, month)
    return year, month
