# views/novel.py

from flask import Blueprint, current_app, request

import config
from models.novel import ListSort
from utils.responses import _error_response, respond_result

novel_bp = Blueprint('novel', __name__)


def get_novel_service():
    return current_app.extensions['novel_service']


def _internal_error():
    return _error_response(500, 'INTERNAL', 'internal error')


@novel_bp.route('/novel/list', methods=['GET'])
def list_novels():
    """Paginated listing of stored books with per-language progress."""
    try:
        page = request.args.get('page', 0, type=int)
        provider_id = (request.args.get('provider') or '').strip() or None
        sort = ListSort.parse(request.args.get('sort'))
        if sort is None:
            allowed = ', '.join(option.value for option in ListSort)
            return _error_response(400, 'BAD_REQUEST', f'sort must be one of: {allowed}')

        result = get_novel_service().list(
            page=max(page, 0),
            page_size=config.NOVEL_LIST_PAGE_SIZE,
            provider_id=provider_id,
            sort=sort,
        )
        return respond_result(result)
    except Exception:
        current_app.logger.exception("Unhandled error in list_novels")
        return _internal_error()


@novel_bp.route('/novel/rank/<provider_id>', methods=['GET'])
def list_rank(provider_id):
    """Live provider ranking; every query parameter goes to the provider as-is."""
    try:
        options = request.args.to_dict(flat=True)
        result = get_novel_service().list_rank(provider_id=provider_id, options=options)
        response, status = respond_result(result)
        if result.ok:
            response.cache_control.max_age = config.NOVEL_RANK_CACHE_MAX_AGE_SECONDS
        return response, status
    except Exception:
        current_app.logger.exception("Unhandled error in list_rank")
        return _internal_error()


@novel_bp.route('/novel/state/<provider_id>/<book_id>', methods=['GET'])
def get_state(provider_id, book_id):
    try:
        return respond_result(get_novel_service().get_state(provider_id, book_id))
    except Exception:
        current_app.logger.exception("Unhandled error in get_state")
        return _internal_error()


@novel_bp.route('/novel/metadata/<provider_id>/<book_id>', methods=['GET'])
def get_metadata(provider_id, book_id):
    try:
        return respond_result(get_novel_service().get_metadata(provider_id, book_id))
    except Exception:
        current_app.logger.exception("Unhandled error in get_metadata")
        return _internal_error()


@novel_bp.route('/novel/episode/<provider_id>/<book_id>/<episode_id>', methods=['GET'])
def get_episode(provider_id, book_id, episode_id):
    try:
        return respond_result(get_novel_service().get_episode(provider_id, book_id, episode_id))
    except Exception:
        current_app.logger.exception("Unhandled error in get_episode")
        return _internal_error()
