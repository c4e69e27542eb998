from django.utils import timezone
from rest_framework import serializers

from academics.models import Enrollment
from .models import Grade


class GradeSerializer(serializers.ModelSerializer):
    student_name = serializers.CharField(source='student.user.full_name', read_only=True)
    classroom_name = serializers.CharField(source='classroom.name', read_only=True)
    percentage = serializers.FloatField(read_only=True)

    class Meta:
        model = Grade
        fields = [
            'id', 'student', 'student_name', 'classroom', 'classroom_name',
            'assignment_name', 'assignment_type', 'score', 'max_score', 'percentage',
            'weightage', 'submission_date', 'due_date', 'late_submission',
            'comments', 'graded_by', 'graded_at', 'created_at', 'updated_at',
        ]
        read_only_fields = ['late_submission', 'graded_by', 'graded_at', 'created_at', 'updated_at']

    def validate(self, data):
        student = data.get('student', getattr(self.instance, 'student', None))
        classroom = data.get('classroom', getattr(self.instance, 'classroom', None))
        if student and classroom and not Enrollment.objects.filter(student=student, classroom=classroom).exists():
            raise serializers.ValidationError(
                {'student': f'Student is not enrolled in classroom {classroom.name}'}
            )
        return data

    def create(self, validated_data):
        request = self.context.get('request')
        if request and request.user.is_authenticated:
            validated_data['graded_by'] = request.user
        validated_data['graded_at'] = timezone.now()
        return super().create(validated_data)


class StudentAverageSerializer(serializers.Serializer):
    student = serializers.IntegerField()
    classroom = serializers.IntegerField()
    average = serializers.FloatField()


class GradeStatisticsSerializer(serializers.Serializer):
    average_score = serializers.FloatField()
    highest_score = serializers.FloatField()
    lowest_score = serializers.FloatField()
    assignment_count = serializers.IntegerField()
    assignment_types = serializers.DictField(child=serializers.IntegerField())
