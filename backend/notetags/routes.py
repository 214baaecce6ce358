"""
REST API routes for items and their hashtags.

Organized into logical groups:
- Items: CRUD for items and their notes (note saves feed the tag store)
- Tags: Suggestions, statistics, cleanup
- Search: Items by hashtag

All routes except /health require authentication and are user-scoped.
"""

from typing import get_args

from flask import Blueprint, g, jsonify, request
from pydantic import ValidationError

from .auth import require_auth
from .services.container import get_services
from .services.hashtags import extract_hashtags
from .services.models import ItemCreate, NotesUpdate, TagSort
from .services.tag_store import TagQueryError


bp = Blueprint("api", __name__)


def _json_error(message: str, status: int = 400):
    return jsonify({"error": message}), status


def _retryable_error(exc: TagQueryError):
    return jsonify({"error": str(exc), "retryable": True}), 503


def _validation_message(exc: ValidationError) -> str:
    first = exc.errors()[0]
    field = ".".join(str(part) for part in first.get("loc", ())) or "body"
    return f"Body field '{field}': {first.get('msg')}"


# ============================================================================
# ITEM ENDPOINTS
# ============================================================================


@bp.post("/items")
@require_auth
def create_item():
    """
    Create an item; hashtags in its notes are recorded.

    Body JSON:
        {title: str, notes?: str}

    Returns:
        JSON: {"item": Item, "tags": [...]}
    """
    user_id = g.user_id
    svc = get_services()

    try:
        payload = ItemCreate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _json_error(_validation_message(e))

    item = svc.items.create_item(user_id, payload.title, payload.notes)
    recorded = svc.tagging.record_usage(user_id, item.notes)

    return jsonify({"item": item.model_dump(), "tags": sorted(recorded)}), 201


@bp.get("/items")
@require_auth
def list_items():
    """
    List items (user-scoped).

    Query params:
        - limit: Max results (default: 50)
        - offset: Pagination offset (default: 0)
    """
    user_id = g.user_id
    svc = get_services()

    try:
        limit = int(request.args.get("limit", 50))
        offset = int(request.args.get("offset", 0))
    except ValueError:
        return _json_error("Query parameters 'limit' and 'offset' must be integers")

    items = svc.items.list_items(user_id, limit=limit, offset=offset)
    return jsonify(
        {
            "items": [item.model_dump() for item in items],
            "total": len(items),
            "limit": limit,
            "offset": offset,
        }
    )


@bp.get("/items/search")
@require_auth
def search_items_by_tags():
    """
    Items whose notes contain any of the given hashtags.

    Query params:
        - tags: Comma-separated tags, "#" optional (repeatable)
    """
    user_id = g.user_id
    svc = get_services()

    tags = [
        part.strip()
        for value in request.args.getlist("tags")
        for part in value.split(",")
        if part.strip()
    ]
    if not tags:
        return _json_error("Query parameter 'tags' is required")

    try:
        items = svc.tagging.search_items_by_tags(user_id, tags)
    except TagQueryError as e:
        return _retryable_error(e)

    return jsonify({"tags": tags, "items": [item.model_dump() for item in items]})


@bp.get("/items/<item_id>")
@require_auth
def get_item(item_id: str):
    """
    Get a specific item by ID (user-scoped).

    Returns:
        JSON: Item with its extracted tags, or 404
    """
    user_id = g.user_id
    svc = get_services()

    item = svc.items.get_item(user_id, item_id)
    if not item:
        return _json_error("Item not found", 404)

    item.tags = extract_hashtags(item.notes)
    return jsonify(item.model_dump())


@bp.put("/items/<item_id>/notes")
@require_auth
def update_item_notes(item_id: str):
    """
    Replace an item's notes and record the hashtags they contain.

    Every save counts as one usage of each tag, even if the text is unchanged.

    Body JSON:
        {notes: str}
    """
    user_id = g.user_id
    svc = get_services()

    try:
        payload = NotesUpdate.model_validate(request.get_json(silent=True) or {})
    except ValidationError as e:
        return _json_error(_validation_message(e))

    item = svc.items.update_notes(user_id, item_id, payload.notes)
    if not item:
        return _json_error("Item not found", 404)

    recorded = svc.tagging.record_usage(user_id, item.notes)
    return jsonify({"item": item.model_dump(), "tags": sorted(recorded)})


@bp.delete("/items/<item_id>")
@require_auth
def delete_item(item_id: str):
    """
    Delete an item by ID (user-scoped), then drop tags nothing mentions any more.

    Returns:
        JSON: {"success": bool, "removed_tags": [...]}
    """
    user_id = g.user_id
    svc = get_services()

    if not svc.items.delete_item(user_id, item_id):
        return _json_error("Item not found", 404)

    removed = svc.tagging.reconcile(user_id)
    return jsonify({"success": True, "removed_tags": sorted(removed)})


# ============================================================================
# TAG ENDPOINTS
# ============================================================================


@bp.get("/tags/suggestions")
@require_auth
def get_tag_suggestions():
    """
    Autocomplete suggestions, most recently used first.

    Query params:
        - q: Tag prefix, "#" optional (optional)
        - limit: Max results (default: 10)
    """
    user_id = g.user_id
    svc = get_services()

    limit = request.args.get("limit")
    try:
        limit = int(limit) if limit is not None else None
    except ValueError:
        return _json_error("Query parameter 'limit' must be an integer")

    try:
        suggestions = svc.tagging.suggest(user_id, request.args.get("q"), limit)
    except TagQueryError as e:
        return _retryable_error(e)

    return jsonify({"suggestions": [s.model_dump() for s in suggestions]})


@bp.get("/tags")
@require_auth
def get_tags():
    """
    All of the user's tags with usage statistics.

    Query params:
        - sort: usage (default) | alphabetical | recent
    """
    user_id = g.user_id
    svc = get_services()

    sort_by = request.args.get("sort", "usage")
    if sort_by not in get_args(TagSort):
        return _json_error("Query parameter 'sort' must be one of: usage, alphabetical, recent")

    try:
        tags = svc.tagging.list_all(user_id, sort_by)
    except TagQueryError as e:
        return _retryable_error(e)

    return jsonify({"tags": [t.model_dump() for t in tags], "sort": sort_by})


@bp.post("/tags/cleanup")
@require_auth
def cleanup_tags():
    """Remove tags that no remaining item mentions."""
    user_id = g.user_id
    svc = get_services()

    removed = svc.tagging.reconcile(user_id)
    return jsonify({"removed_tags": sorted(removed), "deleted_count": len(removed)})


@bp.delete("/tags")
@require_auth
def delete_all_tags():
    """Remove every tag of the user (account deletion cascade)."""
    user_id = g.user_id
    svc = get_services()

    deleted = svc.tagging.delete_user_tags(user_id)
    return jsonify({"success": True, "deleted_count": deleted})


# ============================================================================
# UTILITY ENDPOINTS
# ============================================================================


@bp.get("/health")
def health():
    """Health check endpoint."""
    return jsonify({"status": "ok"})
