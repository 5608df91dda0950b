# views/status.py

from flask import Blueprint, current_app, jsonify
from database import get_db, get_cursor

status_bp = Blueprint('status', __name__)


@status_bp.route('/api/status', methods=['GET'])
def get_status():
    """
    Returns the current status of the application and database.
    """
    cursor = None
    try:
        conn = get_db()
        cursor = get_cursor(conn)
        cursor.execute("SELECT COUNT(*) AS count FROM book_metadata")
        book_count = cursor.fetchone()['count']

        return jsonify({
            'status': 'ok',
            'book_count': book_count,
            'providers': sorted(current_app.extensions['provider_registry'].ids()),
        })
    except Exception:
        current_app.logger.exception("Unhandled error in get_status")
        return jsonify({
            'status': 'error',
            'message': 'internal error'
        }), 500
    finally:
        if cursor is not None:
            cursor.close()
