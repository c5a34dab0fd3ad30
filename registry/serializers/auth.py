from rest_framework import serializers

from registry.validators import PHONE_RE


class GoogleLoginSerializer(serializers.Serializer):
    idToken = serializers.CharField(error_messages={'required': 'Missing ID token', 'blank': 'Missing ID token'})


class PhoneLoginSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=150)
    phone = serializers.CharField(max_length=16)

    def validate_name(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('Name is required')
        return v

    def validate_phone(self, v):
        v = (v or '').strip()
        if not PHONE_RE.match(v):
            raise serializers.ValidationError('Phone format invalid')
        return v


class LoginSerializer(serializers.Serializer):
    username = serializers.CharField()
    password = serializers.CharField(trim_whitespace=False)

    def validate_username(self, v):
        v = (v or '').strip()
        if not v:
            raise serializers.ValidationError('Username is required')
        return v

    def validate_password(self, v):
        if not v:
            raise serializers.ValidationError('Password is required')
        return v


class AdminGrantSerializer(serializers.Serializer):
    """Either a contact key to promote, or a username/password pair to create."""
    email = serializers.EmailField(required=False, allow_blank=True)
    phone = serializers.CharField(required=False, allow_blank=True, max_length=16)
    name = serializers.CharField(required=False, allow_blank=True, max_length=150)
    username = serializers.CharField(required=False, allow_blank=True)
    password = serializers.CharField(required=False, allow_blank=True, trim_whitespace=False)

    def validate_phone(self, v):
        v = (v or '').strip()
        if v and not PHONE_RE.match(v):
            raise serializers.ValidationError('Phone format invalid')
        return v

    def validate(self, attrs):
        if attrs.get('username') or attrs.get('password'):
            if not (attrs.get('username') and attrs.get('password')):
                raise serializers.ValidationError('Missing fields')
            return attrs
        if not attrs.get('email') and not attrs.get('phone'):
            raise serializers.ValidationError('Provide email or phone')
        return attrs
