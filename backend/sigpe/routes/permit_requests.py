from __future__ import annotations
from datetime import datetime, timezone
import logging
from flask import Blueprint, request, abort, current_app
from sigpe import get_db
from sigpe.config.settings import FLAG_STRICT_REQUEST_TRANSITIONS
from sigpe.constants.permissions import Role
from sigpe.decorators.auth import require_permissions, require_login
from sigpe.decorators.audit import audit_log
from sigpe.models.hunter import Hunter
from sigpe.models.permit import Permit
from sigpe.models.permit_request import PermitRequest
from sigpe.services.policy import filter_by_scope, assert_hunter_access
from sigpe.utils.fsm import TransitionValidator
from sigpe.utils.listing import respond_with_list, respond_with_item
from sigpe.utils.sorting import apply_multi_sort
from sigpe.utils.validation import validate_fields, validate_status, one_of, min_length, FieldValidationError

log = logging.getLogger(__name__)

requests_bp = Blueprint('permit_requests', __name__)

REQUEST_FSM = TransitionValidator.linear(
    [
        PermitRequest.STATUS_NEW,
        PermitRequest.STATUS_ASSIGNED,
        PermitRequest.STATUS_APPOINTMENT,
        PermitRequest.STATUS_DOCUMENTS_VERIFIED,
        PermitRequest.STATUS_VALIDATED,
    ],
    escape=PermitRequest.STATUS_REJECTED,
    field_name='statut',
)

REQUEST_REQUIRED = {
    'permit_type': one_of(PermitRequest.PERMIT_TYPES, f'permit_type must be one of {", ".join(PermitRequest.PERMIT_TYPES)}'),
}
REQUEST_OPTIONAL = {
    'request_type': one_of(PermitRequest.REQUEST_TYPES, f'request_type must be one of {", ".join(PermitRequest.REQUEST_TYPES)}'),
    'region': min_length(2, 'Region is invalid'),
    'comments': min_length(1, 'Comments are invalid'),
}

SORTABLE = {
    'created_at': PermitRequest.created_at,
    'updated_at': PermitRequest.updated_at,
    'statut': PermitRequest.statut,
    'permit_type': PermitRequest.permit_type,
    'id': PermitRequest.id,
}


def strict_transitions() -> bool:
    return bool(current_app.config.get(FLAG_STRICT_REQUEST_TRANSITIONS, True))


def allowed_targets(current: str):
    if strict_transitions():
        return REQUEST_FSM.allowed_from(current)
    if current in PermitRequest.TERMINAL_STATUSES:
        return []
    return sorted(s for s in PermitRequest.ALL_STATUSES if s != current)


def assert_transition(current: str, target: str):
    validate_status(target, PermitRequest.ALL_STATUSES, field_name='statut')
    if strict_transitions():
        REQUEST_FSM.assert_can_transition(current, target)
    elif target not in allowed_targets(current):
        abort(400, description=f'Invalid statut transition {current} -> {target}')


def _request_json(r: PermitRequest):
    return {
        'id': r.id,
        'hunter_id': r.hunter_id,
        'user_id': r.user_id,
        'permit_type': r.permit_type,
        'request_type': r.request_type,
        'statut': r.statut,
        'region': r.region,
        'comments': r.comments,
        'agent_id': r.agent_id,
        'previous_permit_id': r.previous_permit_id,
        'rejection_reason': r.rejection_reason,
        'validated_by': r.validated_by,
        'validated_at': r.validated_at.isoformat() if r.validated_at else None,
        'allowed_transitions': allowed_targets(r.statut),
    }


def _get_request(request_id: int, principal) -> PermitRequest:
    r = get_db().get(PermitRequest, request_id)
    if not r:
        abort(404)
    assert_hunter_access(principal, r.hunter_id)
    return r


def _prefetch_request(request_id):
    r = get_db().get(PermitRequest, request_id) if request_id else None
    return _request_json(r) if r else {}


@requests_bp.get('')
@require_permissions('PERMIT.VIEW')
def list_requests(principal):
    q = filter_by_scope(get_db().query(PermitRequest), PermitRequest.hunter_id, principal)
    statut = request.args.get('statut')
    if statut:
        q = q.filter(PermitRequest.statut == validate_status(statut, PermitRequest.ALL_STATUSES, 'statut'))
    permit_type = request.args.get('permit_type')
    if permit_type:
        q = q.filter(PermitRequest.permit_type == permit_type)
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, PermitRequest.id, default='-created_at')
    return respond_with_list(q, _request_json)


@requests_bp.get('/<int:request_id>')
@require_permissions('PERMIT.VIEW')
def get_request(request_id: int, principal):
    r = _get_request(request_id, principal)
    return respond_with_item(_request_json(r), r.updated_at)


@requests_bp.post('')
@require_login
@audit_log('PERMIT_REQUEST.CREATE', entity='PermitRequest', entity_id_key='id', meta_keys=['hunter_id', 'permit_type', 'request_type'])
def create_request(principal):
    """Hunters file for themselves; staff with PERMIT.CREATE file for any hunter in scope."""
    session = get_db()
    data = request.json or {}
    if principal.role == Role.HUNTER.value:
        if principal.hunter_id is None:
            abort(400, description='Account is not linked to a hunter')
        hunter_id = principal.hunter_id
    elif principal.allows('PERMIT.CREATE'):
        hunter_id = data.get('hunter_id')
        if not isinstance(hunter_id, int):
            raise FieldValidationError({'hunter_id': 'hunter_id is required'})
    else:
        abort(403, description='Missing permission')
    hunter = session.get(Hunter, hunter_id)
    if not hunter:
        abort(404, description='Hunter not found')
    assert_hunter_access(principal, hunter.id)
    fields = validate_fields(data, REQUEST_REQUIRED, REQUEST_OPTIONAL)
    previous = data.get('previous_permit_id')
    if previous is not None:
        permit = session.get(Permit, previous)
        if not permit or permit.hunter_id != hunter.id:
            abort(400, description='previous_permit_id does not belong to this hunter')
    r = PermitRequest(
        hunter_id=hunter.id,
        user_id=principal.user_id,
        permit_type=fields['permit_type'],
        request_type=fields.get('request_type') or 'NOUVELLE',
        region=fields.get('region') or hunter.region,
        comments=fields.get('comments'),
        previous_permit_id=previous,
        statut=PermitRequest.STATUS_NEW,
    )
    session.add(r)
    session.commit()
    return _request_json(r), 201


@requests_bp.post('/<int:request_id>/transition')
@require_permissions('PERMIT.EDIT')
@audit_log('PERMIT_REQUEST.TRANSITION', entity='PermitRequest', entity_id_key='id', diff_keys=['statut'],
           pre_fetch=lambda a, kw: _prefetch_request(kw.get('request_id')))
def transition_request(request_id: int, principal):
    session = get_db()
    r = _get_request(request_id, principal)
    data = request.json or {}
    target = data.get('statut')
    if not target:
        raise FieldValidationError({'statut': 'statut is required'})
    assert_transition(r.statut, target)
    if target == PermitRequest.STATUS_ASSIGNED:
        r.agent_id = data.get('agent_id') or principal.user_id
    elif target == PermitRequest.STATUS_REJECTED:
        reason = (data.get('rejection_reason') or '').strip()
        if not reason:
            raise FieldValidationError({'rejection_reason': 'A rejection reason is required'})
        r.rejection_reason = reason
    elif target == PermitRequest.STATUS_VALIDATED:
        r.validated_by = principal.user_id
        r.validated_at = datetime.now(timezone.utc)
    if data.get('comments'):
        r.comments = data['comments']
    previous = r.statut
    r.statut = target
    session.commit()
    log.info('Permit request %s: %s -> %s', r.id, previous, target)
    return _request_json(r)


@requests_bp.delete('/<int:request_id>')
@require_login
@audit_log('PERMIT_REQUEST.DELETE', entity='PermitRequest', entity_id_arg='request_id')
def delete_request(request_id: int, principal):
    session = get_db()
    r = _get_request(request_id, principal)
    own_new = r.user_id == principal.user_id and r.statut == PermitRequest.STATUS_NEW
    if not own_new and not principal.allows('PERMIT.DELETE'):
        abort(403, description='Missing permission')
    session.delete(r)
    session.commit()
    return {'deleted': True}
