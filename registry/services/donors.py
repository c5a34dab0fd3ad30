"""
Donor and institution repository.

All reads and writes of the shared donor pool go through here.  Input
is validated before anything is written, institutions are resolved by
name, and donor deletion always happens by stable identifier; the
positional form only translates an index into an identifier first.
"""
from __future__ import annotations

import logging
from typing import Any, Dict, List, Optional

from django.db import IntegrityError, transaction
from django.db.models import Prefetch, Q

from registry.exceptions import Conflict, InvalidInput, NotFound
from registry.models import Donor, Institution
from registry.services.audit import log_action
from registry.validators import clean_text, validate_age, validate_blood_group

logger = logging.getLogger(__name__)

DONOR_FIELDS = ('name', 'age', 'bloodGroup', 'contact', 'address')


def format_donor(d: Donor) -> Dict[str, Any]:
    return {
        'id': d.id,
        'name': d.name,
        'age': d.age,
        'bloodGroup': d.blood_group,
        'contact': d.contact,
        'address': d.address,
    }


def list_donors_by_institution(*, blood_group: Optional[str] = None,
                               query: Optional[str] = None) -> Dict[str, List[Dict[str, Any]]]:
    """Map every institution name to its donors, both in creation order.

    With a filter, only matching donors are listed and institutions
    without a match are left out.
    """
    donors = Donor.objects.order_by('id')
    filtering = bool(blood_group or query)
    if blood_group:
        donors = donors.filter(blood_group=validate_blood_group(blood_group))
    if query:
        q = query.strip()
        donors = donors.filter(Q(name__icontains=q) | Q(address__icontains=q) | Q(contact__icontains=q))
    institutions = Institution.objects.order_by('id').prefetch_related(
        Prefetch('donors', queryset=donors, to_attr='listed_donors')
    )
    result: Dict[str, List[Dict[str, Any]]] = {}
    for inst in institutions:
        if filtering and not inst.listed_donors:
            continue
        result[inst.name] = [format_donor(d) for d in inst.listed_donors]
    return result


def _clean_institution_name(name) -> str:
    name = clean_text(name)
    if not name:
        raise InvalidInput('Missing name')
    if len(name) > 255:
        raise InvalidInput('Institution name is too long')
    if '/' in name:
        # names are path segments in the delete routes
        raise InvalidInput('Institution name may not contain "/"')
    return name


def register_donor(institution, fields: Dict[str, Any], *, actor_id: Optional[int] = None) -> Donor:
    """Validate and insert a donor, creating its institution on first use."""
    institution = clean_text(institution)
    values = {k: fields.get(k) for k in DONOR_FIELDS}
    if not institution or any(v is None or str(v).strip() == '' for v in values.values()):
        raise InvalidInput('Missing fields')
    institution = _clean_institution_name(institution)
    age = validate_age(values['age'])
    blood_group = validate_blood_group(values['bloodGroup'])
    name = clean_text(values['name'])
    contact = clean_text(values['contact'])
    address = clean_text(values['address'])
    if not (name and contact and address):
        raise InvalidInput('Missing fields')

    with transaction.atomic():
        # get_or_create retries the lookup when a concurrent insert wins
        inst, created = Institution.objects.get_or_create(name=institution)
        if created:
            logger.info('institution %r created by donor registration', institution)
        donor = Donor.objects.create(
            institution=inst, name=name, age=age, blood_group=blood_group,
            contact=contact, address=address,
        )
        log_action(actor_id=actor_id, action='donor_create', object_type='donor', object_id=donor.pk,
                   detail={'institution': inst.name})
    return donor


def create_institution(name, *, actor_id: Optional[int] = None) -> Institution:
    name = _clean_institution_name(name)
    try:
        with transaction.atomic():
            inst = Institution.objects.create(name=name)
    except IntegrityError:
        raise Conflict('Institution already exists')
    log_action(actor_id=actor_id, action='institution_create', object_type='institution',
               object_id=inst.pk, detail={'name': name})
    return inst


def delete_institution(name, *, actor_id: Optional[int] = None) -> int:
    """Delete an institution and, by cascade, its donors; returns the donor count."""
    with transaction.atomic():
        inst = Institution.objects.select_for_update().filter(name=clean_text(name)).first()
        if inst is None:
            raise NotFound()
        donor_count = inst.donors.count()
        inst.delete()
        log_action(actor_id=actor_id, action='institution_delete', object_type='institution',
                   object_id=inst.name, detail={'donors': donor_count})
    return donor_count


def delete_donor(donor_id, *, actor_id: Optional[int] = None) -> None:
    with transaction.atomic():
        deleted, _ = Donor.objects.filter(pk=donor_id).delete()
        if not deleted:
            raise NotFound()
        log_action(actor_id=actor_id, action='donor_delete', object_type='donor', object_id=donor_id)


def donor_id_at(institution, index) -> int:
    """Translate a positional index within an institution into a donor id."""
    try:
        idx = int(index)
    except (TypeError, ValueError):
        raise InvalidInput('Bad index')
    inst = Institution.objects.filter(name=clean_text(institution)).first()
    if inst is None:
        raise NotFound()
    ids = list(inst.donors.order_by('id').values_list('id', flat=True))
    if idx < 0 or idx >= len(ids):
        raise NotFound()
    return ids[idx]


def delete_donor_by_positional_index(institution, index, *, actor_id: Optional[int] = None) -> int:
    donor_id = donor_id_at(institution, index)
    delete_donor(donor_id, actor_id=actor_id)
    return donor_id
