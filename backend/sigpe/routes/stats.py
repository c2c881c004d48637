from flask import Blueprint, request, abort
from sigpe import get_db
from sigpe.constants.permissions import Role
from sigpe.decorators.auth import require_permissions, require_login
from sigpe.models.audit import AuditLog
from sigpe.services.stats import compute_stats, build_dashboard
from sigpe.utils.listing import respond_with_list, iso_z
from sigpe.utils.sorting import apply_multi_sort

stats_bp = Blueprint('stats', __name__)

HISTORY_SORTABLE = {
    'created_at': AuditLog.created_at,
    'operation': AuditLog.operation,
    'id': AuditLog.id,
}


def _history_json(e: AuditLog):
    return {
        'id': e.id,
        'operation': e.operation,
        'entity_type': e.entity_type,
        'entity_id': e.entity_id,
        'user_id': e.user_id,
        'details': e.details,
        'meta': e.meta or {},
        'created_at': iso_z(e.created_at),
    }


@stats_bp.get('/stats')
@require_permissions('PERMIT.VIEW', roles=(Role.ADMIN.value, Role.AGENT.value, Role.SUB_AGENT.value))
def stats(principal):
    return compute_stats(principal)


@stats_bp.get('/dashboard')
@require_login
def dashboard(principal):
    return build_dashboard(principal)


@stats_bp.get('/history')
@require_permissions(roles=(Role.ADMIN.value,))
def history(principal):
    q = get_db().query(AuditLog)
    for key in ('operation', 'entity_type', 'entity_id'):
        value = request.args.get(key)
        if value:
            q = q.filter(getattr(AuditLog, key) == value)
    user_id = request.args.get('user_id')
    if user_id:
        if not user_id.isdigit():
            abort(400, description='user_id must be int')
        q = q.filter(AuditLog.user_id == int(user_id))
    q = apply_multi_sort(q, request.args.get('sort'), HISTORY_SORTABLE, AuditLog.id, default='-id')
    return respond_with_list(q, _history_json, ts_attr='created_at')
