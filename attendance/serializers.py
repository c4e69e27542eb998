from rest_framework import serializers

from academics.models import ClassRoom, StudentProfile
from backend.exceptions import Conflict
from .models import Attendance, AttendanceRecord
from . import services


class AttendanceRecordSerializer(serializers.ModelSerializer):
    student_name = serializers.CharField(source='student.user.full_name', read_only=True)

    class Meta:
        model = AttendanceRecord
        fields = ['id', 'student', 'student_name', 'status', 'remarks', 'minutes_late']


class RecordInputSerializer(serializers.Serializer):
    """One student's entry when taking or editing attendance"""
    student = serializers.PrimaryKeyRelatedField(queryset=StudentProfile.objects.all())
    status = serializers.ChoiceField(choices=AttendanceRecord.STATUS_CHOICES, default='present')
    remarks = serializers.CharField(required=False, allow_blank=True, default='')
    minutes_late = serializers.IntegerField(required=False, min_value=0, default=0)


class RecordUpdateSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=AttendanceRecord.STATUS_CHOICES, required=False)
    remarks = serializers.CharField(required=False, allow_blank=True)
    minutes_late = serializers.IntegerField(required=False, min_value=0)


class AttendanceSerializer(serializers.ModelSerializer):
    classroom = serializers.PrimaryKeyRelatedField(queryset=ClassRoom.objects.all())
    classroom_name = serializers.CharField(source='classroom.name', read_only=True)
    # Accepts either a date or a datetime; stored as the calendar day
    date = serializers.CharField()
    records = AttendanceRecordSerializer(many=True, read_only=True)
    student_records = RecordInputSerializer(many=True, write_only=True, required=False)

    class Meta:
        model = Attendance
        fields = [
            'id', 'classroom', 'classroom_name', 'date', 'taken_by', 'session_topic',
            'is_complete', 'records', 'student_records', 'created_at', 'updated_at',
        ]
        read_only_fields = ['taken_by', 'created_at', 'updated_at']
        # Same-day duplicates are reported by the service as a Conflict
        validators = []

    def validate_date(self, value):
        return services.truncate_to_day(value)

    def to_representation(self, instance):
        data = super().to_representation(instance)
        data['date'] = instance.date.isoformat()
        return data

    def create(self, validated_data):
        request = self.context.get('request')
        taken_by = request.user if request and request.user.is_authenticated else None
        return services.create_attendance(
            validated_data['classroom'].pk,
            validated_data['date'],
            records=validated_data.get('student_records', []),
            taken_by=taken_by,
            session_topic=validated_data.get('session_topic'),
            is_complete=validated_data.get('is_complete', False),
        )

    def update(self, instance, validated_data):
        validated_data.pop('student_records', None)
        if 'classroom' in validated_data and validated_data['classroom'].pk != instance.classroom_id:
            raise serializers.ValidationError({'classroom': ['Attendance cannot be moved to another classroom.']})
        if 'date' in validated_data and validated_data['date'] != instance.date:
            duplicate = Attendance.objects.filter(
                classroom_id=instance.classroom_id, date=validated_data['date']
            ).exclude(pk=instance.pk)
            if duplicate.exists():
                raise Conflict('Attendance record already exists for this date')
        return super().update(instance, validated_data)


class AttendanceStatisticsSerializer(serializers.Serializer):
    total = serializers.IntegerField()
    present = serializers.IntegerField()
    absent = serializers.IntegerField()
    late = serializers.IntegerField()
    excused = serializers.IntegerField()
    present_percentage = serializers.FloatField(required=False)
    absent_percentage = serializers.FloatField(required=False)
    late_percentage = serializers.FloatField(required=False)
    excused_percentage = serializers.FloatField(required=False)


class StudentAttendanceEntrySerializer(serializers.Serializer):
    attendance_id = serializers.IntegerField()
    date = serializers.DateField()
    classroom_id = serializers.IntegerField()
    classroom_name = serializers.CharField()
    status = serializers.CharField()
    remarks = serializers.CharField(allow_blank=True)
    minutes_late = serializers.IntegerField()
