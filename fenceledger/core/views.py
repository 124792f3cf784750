import logging

from rest_framework import status
from rest_framework.decorators import api_view, permission_classes
from rest_framework.exceptions import AuthenticationFailed
from rest_framework.permissions import IsAuthenticated, AllowAny
from rest_framework.response import Response
from rest_framework_simplejwt.views import TokenRefreshView
from rest_framework_simplejwt.serializers import TokenRefreshSerializer
from rest_framework_simplejwt.exceptions import InvalidToken, TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from django.contrib.auth import authenticate, get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.db import IntegrityError, transaction

from .exceptions import AdminAlreadyExists
from .models import Role, normalize_role
from .serializers import UserSerializer, RegisterSerializer, LoginSerializer

logger = logging.getLogger(__name__)

User = get_user_model()


def issue_tokens(user):
    """Create a refresh/access pair carrying the caller's role"""
    refresh = RefreshToken.for_user(user)
    refresh['email'] = user.email
    refresh['role'] = user.role
    return {
        'access': str(refresh.access_token),
        'refresh': str(refresh),
    }


class CustomTokenRefreshSerializer(TokenRefreshSerializer):
    """Token refresh serializer that handles deleted users gracefully"""
    def validate(self, attrs):
        try:
            return super().validate(attrs)
        except (InvalidToken, TokenError):
            raise InvalidToken('Token is invalid or expired.')
        except (ObjectDoesNotExist, User.DoesNotExist):
            raise InvalidToken('Token is invalid. User no longer exists.')


class CustomTokenRefreshView(TokenRefreshView):
    serializer_class = CustomTokenRefreshSerializer


@api_view(['POST'])
@permission_classes([AllowAny])
def register(request):
    """User registration endpoint. Only one admin may ever exist."""
    if normalize_role(request.data.get('role')) == Role.ADMIN:
        if User.objects.filter(role=Role.ADMIN).exists():
            logger.warning(f"Rejected second admin registration for {request.data.get('email')}")
            raise AdminAlreadyExists()

    serializer = RegisterSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    try:
        with transaction.atomic():
            user = serializer.save()
    except IntegrityError:
        # A concurrent registration won the single admin slot
        if serializer.validated_data['role'] == Role.ADMIN:
            logger.warning(f"Rejected concurrent admin registration for {serializer.validated_data['email']}")
            raise AdminAlreadyExists()
        raise
    logger.info(f"Registered user {user.email} with role {user.role}")
    return Response({
        'user': UserSerializer(user).data,
        **issue_tokens(user),
    }, status=status.HTTP_201_CREATED)


@api_view(['POST'])
@permission_classes([AllowAny])
def login(request):
    """Exchange e-mail and password for a token pair"""
    serializer = LoginSerializer(data=request.data)
    serializer.is_valid(raise_exception=True)
    user = authenticate(
        request,
        username=serializer.validated_data['email'].lower(),
        password=serializer.validated_data['password'],
    )
    if user is None:
        raise AuthenticationFailed('Invalid credentials')
    return Response({
        'user': UserSerializer(user).data,
        **issue_tokens(user),
    })


@api_view(['GET'])
@permission_classes([IsAuthenticated])
def user_me(request):
    """Get current user"""
    return Response({'user': UserSerializer(request.user).data})
