from rest_framework import serializers
from django.contrib.auth import get_user_model

from .models import ClassRoom, StudentProfile, TeacherProfile
from . import profiles, services

User = get_user_model()


class SimpleUserSerializer(serializers.ModelSerializer):
    class Meta:
        model = User
        fields = ['id', 'username', 'first_name', 'last_name', 'email', 'phone_number', 'role']


class ClassRoomSerializer(serializers.ModelSerializer):
    teacher_name = serializers.CharField(source='teacher.user.full_name', read_only=True)
    student_count = serializers.SerializerMethodField()
    students = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta:
        model = ClassRoom
        fields = [
            'id', 'name', 'subject', 'grade_level', 'teacher', 'teacher_name', 'schedule',
            'semester', 'year', 'is_active', 'description', 'syllabus', 'max_capacity',
            'credits', 'students', 'student_count', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def get_student_count(self, obj):
        return obj.enrollments.count()

    def update(self, instance, validated_data):
        return services.update_classroom(instance.pk, **validated_data)


class StudentProfileSerializer(serializers.ModelSerializer):
    user = SimpleUserSerializer(read_only=True)
    user_id = serializers.PrimaryKeyRelatedField(source='user', queryset=User.objects.all(), write_only=True)
    classrooms = serializers.PrimaryKeyRelatedField(many=True, read_only=True)

    class Meta:
        model = StudentProfile
        fields = [
            'id', 'user', 'user_id', 'student_id', 'grade', 'enrollment_date', 'classrooms',
            'guardian_name', 'guardian_email', 'guardian_phone',
            'emergency_contact_name', 'emergency_contact_relationship', 'emergency_contact_phone',
            'date_of_birth', 'special_needs', 'medical_info', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def create(self, validated_data):
        user = validated_data.pop('user')
        return profiles.create_student_profile(user.pk, **validated_data)

    def update(self, instance, validated_data):
        # The owning user is fixed once the profile exists
        validated_data.pop('user', None)
        return super().update(instance, validated_data)


class TeacherProfileSerializer(serializers.ModelSerializer):
    user = SimpleUserSerializer(read_only=True)
    user_id = serializers.PrimaryKeyRelatedField(source='user', queryset=User.objects.all(), write_only=True)
    classrooms = serializers.PrimaryKeyRelatedField(many=True, read_only=True)
    subjects = serializers.ListField(child=serializers.CharField(max_length=100), required=False)
    qualifications = serializers.ListField(child=serializers.CharField(), required=False)
    office_hours = serializers.ListField(child=serializers.DictField(), required=False)

    class Meta:
        model = TeacherProfile
        fields = [
            'id', 'user', 'user_id', 'teacher_id', 'subjects', 'qualifications', 'hire_date',
            'department', 'office_location', 'office_hours', 'bio', 'employment_status',
            'classrooms', 'created_at', 'updated_at',
        ]
        read_only_fields = ['created_at', 'updated_at']

    def create(self, validated_data):
        user = validated_data.pop('user')
        return profiles.create_teacher_profile(user.pk, **validated_data)

    def update(self, instance, validated_data):
        validated_data.pop('user', None)
        if 'subjects' in validated_data:
            validated_data['subjects'] = list(dict.fromkeys(validated_data['subjects']))
        return super().update(instance, validated_data)


class SubjectSerializer(serializers.Serializer):
    subject = serializers.CharField(max_length=100)
