from rest_framework import serializers
from django.contrib.auth.password_validation import validate_password
from .models import User, Role, normalize_role


class UserSerializer(serializers.ModelSerializer):
    roleLabel = serializers.CharField(source='role_label', read_only=True)
    createdAt = serializers.DateTimeField(source='created_at', read_only=True)

    class Meta:
        model = User
        fields = ['id', 'name', 'email', 'role', 'roleLabel', 'createdAt']
        read_only_fields = ['role']


class RegisterSerializer(serializers.Serializer):
    name = serializers.CharField(max_length=200)
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, validators=[validate_password])
    role = serializers.CharField()

    def validate_role(self, value):
        role = normalize_role(value)
        if role is None:
            raise serializers.ValidationError('Invalid role')
        return role

    def validate_email(self, value):
        if User.objects.filter(email__iexact=value).exists():
            raise serializers.ValidationError('User already exists')
        return value.lower()

    def create(self, validated_data):
        password = validated_data.pop('password')
        user = User(username=validated_data['email'], is_active=True, **validated_data)
        if user.role == Role.ADMIN:
            user.is_staff = True
        user.set_password(password)
        user.save()
        return user


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True)
