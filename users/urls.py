from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView

from .views import (
    ChangePasswordView,
    CurrentUserView,
    ForgotPasswordView,
    LoginView,
    ResetPasswordView,
    UserRegistrationView,
    UserViewSet,
    VerifyTokenView,
)

router = DefaultRouter()
router.register(r'accounts', UserViewSet, basename='accounts')

urlpatterns = [
    path('', include(router.urls)),
    path('register/', UserRegistrationView.as_view(), name='register'),
    path('login/', LoginView.as_view(), name='login'),
    path('token/refresh/', TokenRefreshView.as_view(), name='login-refresh'),
    path('token/verify/', VerifyTokenView.as_view(), name='token-verify'),
    path('me/', CurrentUserView.as_view(), name='current-user'),
    path('password/change/', ChangePasswordView.as_view(), name='password-change'),
    path('password/forgot/', ForgotPasswordView.as_view(), name='password-forgot'),
    path('password/reset/', ResetPasswordView.as_view(), name='password-reset'),
]
