from flask import Blueprint, request, abort
from sigpe import get_db
from sigpe.decorators.auth import require_permissions
from sigpe.decorators.audit import audit_log
from sigpe.models.hunter import Hunter
from sigpe.models.tax import Tax
from sigpe.services.policy import filter_by_scope, assert_hunter_access
from sigpe.services.taxes import validate_tax, check_permit_for_tax, record_tax, tax_json
from sigpe.utils.listing import respond_with_list, respond_with_item
from sigpe.utils.sorting import apply_multi_sort

taxes_bp = Blueprint('taxes', __name__)

SORTABLE = {
    'tax_number': Tax.tax_number,
    'issue_date': Tax.issue_date,
    'amount': Tax.amount,
    'animal_type': Tax.animal_type,
    'id': Tax.id,
}


@taxes_bp.get('')
@require_permissions('PERMIT.VIEW')
def list_taxes(principal):
    q = filter_by_scope(get_db().query(Tax), Tax.hunter_id, principal)
    hunter_id = request.args.get('hunter_id')
    if hunter_id:
        if not hunter_id.isdigit():
            abort(400, description='hunter_id must be int')
        q = q.filter(Tax.hunter_id == int(hunter_id))
    permit_id = request.args.get('permit_id')
    if permit_id:
        if not permit_id.isdigit():
            abort(400, description='permit_id must be int')
        q = q.filter(Tax.permit_id == int(permit_id))
    animal = request.args.get('animal_type')
    if animal:
        q = q.filter(Tax.animal_type == animal)
    q = apply_multi_sort(q, request.args.get('sort'), SORTABLE, Tax.id, default='-issue_date')
    return respond_with_list(q, tax_json, ts_attr='created_at')


@taxes_bp.get('/<int:tax_id>')
@require_permissions('PERMIT.VIEW')
def get_tax(tax_id: int, principal):
    t = get_db().get(Tax, tax_id)
    if not t:
        abort(404)
    assert_hunter_access(principal, t.hunter_id)
    return respond_with_item(tax_json(t), t.created_at)


@taxes_bp.post('')
@require_permissions('PERMIT.CREATE')
@audit_log('TAX.CREATE', entity='Tax', entity_id_key='id', meta_keys=['tax_number', 'hunter_id', 'amount', 'animal_type'])
def create_tax(principal):
    session = get_db()
    data = request.json or {}
    hunter_id = data.get('hunter_id')
    if not isinstance(hunter_id, int):
        abort(400, description='hunter_id required')
    hunter = session.get(Hunter, hunter_id)
    if not hunter:
        abort(404, description='Hunter not found')
    assert_hunter_access(principal, hunter.id)
    fields = validate_tax(data)
    permit_id = data.get('permit_id')
    if permit_id is not None:
        permit_id = check_permit_for_tax(session, hunter, permit_id).id
    elif not fields.get('external_hunter_name'):
        abort(400, description='permit_id required unless the hunter is external')
    tax = record_tax(session, hunter, fields, permit_id)
    return tax_json(tax), 201
