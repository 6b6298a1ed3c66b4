"""Route modules. Each exposes ``bp``."""

from flask import request


def request_data() -> dict:
    """JSON body, or form fields for multipart / urlencoded posts."""
    data = request.get_json(silent=True)
    if isinstance(data, dict):
        return data
    return request.form.to_dict() if request.form else {}
