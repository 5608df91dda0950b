from flask import jsonify

from utils.result import Err, ErrorKind, Ok


def _error_response(status_code: int, code: str, message: str):
    return (
        jsonify({'success': False, 'error': {'code': code, 'message': message}}),
        status_code,
    )


def _success_response(payload, status_code: int = 200):
    return jsonify({'success': True, 'data': payload}), status_code


def respond_result(result):
    """Convert an ``Ok``/``Err`` service result into a Flask response tuple."""
    if isinstance(result, Ok):
        value = result.value
        if hasattr(value, 'to_dict'):
            value = value.to_dict()
        return _success_response(value)
    if isinstance(result, Err):
        return _error_response(result.kind.status_code, result.kind.name, result.message)
    return _error_response(
        ErrorKind.INTERNAL.status_code, ErrorKind.INTERNAL.name, 'internal error'
    )
