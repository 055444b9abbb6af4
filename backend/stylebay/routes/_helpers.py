from flask import current_app, request

from ..errors import ValidationError


def services():
    """Per-app storage and services built in create_app."""
    return current_app.extensions['stylebay']


def request_data():
    """Form fields for multipart requests, JSON body otherwise."""
    if request.form:
        return request.form
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ValidationError('Request body must be a JSON object')
    return data


def request_images():
    return [f for f in request.files.getlist('images') if f and f.filename]
