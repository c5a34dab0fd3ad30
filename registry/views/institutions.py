"""
Institution endpoints.

Creation follows ``INSTITUTION_CREATE_POLICY``; deleting an institution
or one of its donors requires the administrator claim.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from registry.permissions import InstitutionCreatePolicy, IsAdministrator
from registry.serializers.donors import InstitutionCreateSerializer
from registry.services import donors as donor_service
from registry.services.audit import actor_id_of


@api_view(['POST'])
@permission_classes([InstitutionCreatePolicy])
def create_institution(request):
    s = InstitutionCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    inst = donor_service.create_institution(s.validated_data['name'], actor_id=actor_id_of(request.user))
    return Response({'message': 'Institution created', 'id': inst.id, 'name': inst.name},
                    status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdministrator])
def delete_institution(request, name: str):
    removed = donor_service.delete_institution(name, actor_id=actor_id_of(request.user))
    return Response({'message': 'Institution deleted', 'donorsRemoved': removed})


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdministrator])
def delete_donor_at(request, name: str, index: str):
    """Remove the donor at ``index`` in the institution's listing order."""
    donor_id = donor_service.delete_donor_by_positional_index(name, index, actor_id=actor_id_of(request.user))
    return Response({'message': 'Donor deleted', 'id': donor_id})
