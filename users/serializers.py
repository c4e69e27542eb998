from rest_framework import serializers
from django.contrib.auth import get_user_model
from django.contrib.auth.password_validation import validate_password
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

User = get_user_model()


class UserSerializer(serializers.ModelSerializer):
    full_name = serializers.CharField(read_only=True)
    has_student_profile = serializers.SerializerMethodField()
    has_teacher_profile = serializers.SerializerMethodField()

    class Meta:
        model = User
        fields = [
            'id', 'username', 'email', 'first_name', 'last_name', 'full_name', 'phone_number',
            'role', 'is_active', 'last_login', 'date_joined', 'has_student_profile', 'has_teacher_profile',
        ]
        read_only_fields = ['id', 'role', 'is_active', 'last_login', 'date_joined']

    def get_has_student_profile(self, obj):
        return hasattr(obj, 'student_profile')

    def get_has_teacher_profile(self, obj):
        return hasattr(obj, 'teacher_profile')


class UserRegistrationSerializer(serializers.ModelSerializer):
    password = serializers.CharField(write_only=True)
    confirm_password = serializers.CharField(write_only=True)
    # Admin accounts are only granted through the role endpoint
    role = serializers.ChoiceField(
        choices=[User.ROLE_STUDENT, User.ROLE_TEACHER], default=User.ROLE_STUDENT
    )

    class Meta:
        model = User
        fields = ['username', 'email', 'password', 'confirm_password', 'first_name', 'last_name', 'phone_number', 'role']

    def validate(self, data):
        if data['password'] != data['confirm_password']:
            raise serializers.ValidationError({'confirm_password': "Passwords don't match"})
        validate_password(data['password'])
        return data

    def create(self, validated_data):
        validated_data.pop('confirm_password')
        user = User.objects.create_user(**validated_data)
        return user


class RoleTokenObtainPairSerializer(TokenObtainPairSerializer):
    """Login serializer whose tokens carry the user's role."""

    @classmethod
    def get_token(cls, user):
        token = super().get_token(user)
        token['role'] = user.role
        return token

    def validate(self, attrs):
        data = super().validate(attrs)
        data['user'] = UserSerializer(self.user).data
        return data


class RoleSerializer(serializers.Serializer):
    role = serializers.ChoiceField(choices=User.ROLE_CHOICES)


class StatusSerializer(serializers.Serializer):
    is_active = serializers.BooleanField()


class ForgotPasswordSerializer(serializers.Serializer):
    email = serializers.EmailField()


class ResetPasswordSerializer(serializers.Serializer):
    token = serializers.CharField()
    password = serializers.CharField(write_only=True)

    def validate_password(self, value):
        validate_password(value)
        return value


class ChangePasswordSerializer(serializers.Serializer):
    current_password = serializers.CharField(write_only=True)
    new_password = serializers.CharField(write_only=True)

    def validate_new_password(self, value):
        validate_password(value)
        return value


class VerifyTokenSerializer(serializers.Serializer):
    token = serializers.CharField()
