"""
Donor endpoints.

Any signed-in user may list and register donors; removing one takes
the administrator claim.
"""
from __future__ import annotations

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from registry.permissions import IsAdministrator
from registry.serializers.donors import DonorCreateSerializer, DonorListQuerySerializer
from registry.services import donors as donor_service
from registry.services.audit import actor_id_of


@api_view(['GET', 'POST'])
@permission_classes([IsAuthenticated])
def donors(request):
    if request.method == 'GET':
        q = DonorListQuerySerializer(data=request.query_params)
        q.is_valid(raise_exception=True)
        return Response(donor_service.list_donors_by_institution(
            blood_group=q.validated_data.get('bloodGroup'),
            query=q.validated_data.get('q'),
        ))

    s = DonorCreateSerializer(data=request.data)
    s.is_valid(raise_exception=True)
    vd = s.validated_data
    donor = donor_service.register_donor(vd['institution'], vd, actor_id=actor_id_of(request.user))
    return Response({'message': 'Donor added', 'donor': donor_service.format_donor(donor)},
                    status=status.HTTP_201_CREATED)


@api_view(['DELETE'])
@permission_classes([IsAuthenticated, IsAdministrator])
def donor_detail(request, pk: int):
    donor_service.delete_donor(pk, actor_id=actor_id_of(request.user))
    return Response({'message': 'Donor deleted'})
