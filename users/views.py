import logging

from django.conf import settings
from django.contrib.auth import get_user_model
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, generics, permissions, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.views import TokenObtainPairView

from academics.profiles import delete_user
from .permissions import IsAdminRole
from .serializers import (
    ChangePasswordSerializer,
    ForgotPasswordSerializer,
    ResetPasswordSerializer,
    RoleSerializer,
    RoleTokenObtainPairSerializer,
    StatusSerializer,
    UserRegistrationSerializer,
    UserSerializer,
    VerifyTokenSerializer,
)
from . import services

logger = logging.getLogger(__name__)

User = get_user_model()


class LoginView(TokenObtainPairView):
    serializer_class = RoleTokenObtainPairSerializer


class UserRegistrationView(generics.CreateAPIView):
    queryset = User.objects.all()
    serializer_class = UserRegistrationSerializer
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = serializer.save()
        logger.info("Registered user %s with role %s", user.pk, user.role)

        return Response({
            "user": UserSerializer(user).data,
            "tokens": services.issue_tokens(user),
        }, status=status.HTTP_201_CREATED)


class CurrentUserView(generics.RetrieveUpdateAPIView):
    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated]

    def get_object(self):
        return self.request.user


class ChangePasswordView(APIView):
    permission_classes = [permissions.IsAuthenticated]

    def post(self, request):
        serializer = ChangePasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.change_password(
            request.user,
            serializer.validated_data['current_password'],
            serializer.validated_data['new_password'],
        )
        return Response({"message": "Password updated successfully", "tokens": services.issue_tokens(user)})


class ForgotPasswordView(APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = ForgotPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        raw_token = services.issue_password_reset(serializer.validated_data['email'])
        data = {"message": "Password reset token issued"}
        # Without a mail backend the token is only handed back in development
        if settings.DEBUG:
            data['reset_token'] = raw_token
        return Response(data)


class ResetPasswordView(APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = ResetPasswordSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user = services.reset_password(
            serializer.validated_data['token'],
            serializer.validated_data['password'],
        )
        return Response({"message": "Password has been reset", "tokens": services.issue_tokens(user)})


class VerifyTokenView(APIView):
    permission_classes = [permissions.AllowAny]
    authentication_classes = []

    def post(self, request):
        serializer = VerifyTokenSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        token_status, payload = services.verify_token(serializer.validated_data['token'])
        return Response({"status": token_status, "payload": payload})


class UserViewSet(viewsets.ModelViewSet):
    """User administration, restricted to admins."""
    queryset = User.objects.all().order_by('id')
    serializer_class = UserSerializer
    permission_classes = [permissions.IsAuthenticated, IsAdminRole]
    http_method_names = ['get', 'put', 'patch', 'delete', 'head', 'options']
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['role', 'is_active']
    search_fields = ['username', 'email', 'first_name', 'last_name']
    ordering_fields = ['username', 'date_joined', 'last_login']

    def destroy(self, request, *args, **kwargs):
        delete_user(kwargs['pk'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['patch'])
    def role(self, request, pk=None):
        user = self.get_object()
        serializer = RoleSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user.role = serializer.validated_data['role']
        user.save(update_fields=['role'])
        logger.info("User %s role set to %s", user.pk, user.role)
        return Response(self.get_serializer(user).data)

    @action(detail=True, methods=['patch'], url_path='status')
    def set_status(self, request, pk=None):
        user = self.get_object()
        serializer = StatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        user.is_active = serializer.validated_data['is_active']
        user.save(update_fields=['is_active'])
        logger.info("User %s is_active set to %s", user.pk, user.is_active)
        return Response(self.get_serializer(user).data)
