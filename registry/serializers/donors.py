from rest_framework import serializers

from registry.models import MIN_DONOR_AGE
from registry.validators import BLOOD_GROUPS, clean_text


def _blood_group(v):
    v = (v or '').strip().upper()
    if v not in BLOOD_GROUPS:
        raise serializers.ValidationError(f'Blood group must be one of {", ".join(BLOOD_GROUPS)}')
    return v


class DonorCreateSerializer(serializers.Serializer):
    institution = serializers.CharField(max_length=255)
    name = serializers.CharField(max_length=255)
    age = serializers.IntegerField(
        min_value=MIN_DONOR_AGE, max_value=150,
        error_messages={'min_value': f'Donor must be at least {MIN_DONOR_AGE} years old'},
    )
    bloodGroup = serializers.CharField(max_length=3)
    contact = serializers.CharField(max_length=64)
    address = serializers.CharField()

    def validate_bloodGroup(self, v):
        return _blood_group(v)

    def validate(self, attrs):
        for key in ('institution', 'name', 'contact', 'address'):
            attrs[key] = clean_text(attrs[key])
            if not attrs[key]:
                raise serializers.ValidationError('Missing fields')
        return attrs


class DonorListQuerySerializer(serializers.Serializer):
    bloodGroup = serializers.CharField(max_length=3, required=False)
    q = serializers.CharField(max_length=64, required=False)

    def validate_bloodGroup(self, v):
        return _blood_group(v)


class InstitutionCreateSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=255, error_messages={'required': 'Missing name', 'blank': 'Missing name'})
