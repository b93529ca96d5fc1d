from flask import abort, request


def json_body():
    """The request's JSON object, ``{}`` when absent; any other JSON is a 400."""
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        abort(400, description="Request body must be a JSON object.")
    return data


def text_field(data, key, strip=True):
    value = data.get(key)
    if value is None:
        return ""
    if not isinstance(value, str):
        abort(400, description=f"{key} must be a string.")
    return value.strip() if strip else value
