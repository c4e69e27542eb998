from rest_framework import viewsets, filters, status
from rest_framework.decorators import action
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework.response import Response

from attendance import services as attendance_services
from attendance.serializers import (
    AttendanceSerializer, AttendanceStatisticsSerializer, StudentAttendanceEntrySerializer
)
from backend.exceptions import ValidationError
from backend.query import query_date, query_int
from grades import services as grade_services
from grades.serializers import GradeSerializer
from users.permissions import IsAdminRole
from .filters import ClassRoomFilter, StudentProfileFilter, TeacherProfileFilter
from .models import ClassRoom, StudentProfile, TeacherProfile
from .serializers import (
    ClassRoomSerializer, StudentProfileSerializer, SubjectSerializer, TeacherProfileSerializer
)
from . import profiles, services


class ClassRoomViewSet(viewsets.ModelViewSet):
    queryset = ClassRoom.objects.select_related('teacher__user').prefetch_related('students').all()
    serializer_class = ClassRoomSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = ClassRoomFilter
    search_fields = ['name', 'subject', 'description']
    ordering_fields = ['name', 'year', 'created_at']

    def destroy(self, request, *args, **kwargs):
        detached = services.delete_classroom(kwargs['pk'])
        return Response({'id': int(kwargs['pk']), **detached})

    @action(detail=True, methods=['post'])
    def enroll(self, request, pk=None):
        """Enroll a student: body ``{"student": <id>}``"""
        student, classroom = services.enroll(self._student_id(request), pk)
        return Response({
            'student': StudentProfileSerializer(student).data,
            'classroom': self.get_serializer(classroom).data,
        })

    @action(detail=True, methods=['post'])
    def withdraw(self, request, pk=None):
        student, classroom = services.withdraw(self._student_id(request), pk)
        return Response({
            'student': StudentProfileSerializer(student).data,
            'classroom': self.get_serializer(classroom).data,
        })

    @action(detail=True, methods=['get'])
    def students(self, request, pk=None):
        """Get all students in a specific class"""
        classroom = services.get_classroom(pk)
        students = classroom.students.select_related('user')
        serializer = StudentProfileSerializer(students, many=True, context={'request': request})
        return Response(serializer.data)

    @action(detail=True, methods=['get'])
    def attendance(self, request, pk=None):
        """Attendance days of this classroom, newest first"""
        days = attendance_services.classroom_attendance(
            pk,
            start_date=query_date(request, 'start_date'),
            end_date=query_date(request, 'end_date'),
        )
        return Response(AttendanceSerializer(days, many=True).data)

    def _student_id(self, request):
        student_id = request.data.get('student')
        if student_id in (None, ''):
            raise ValidationError({'student': ['This field is required.']})
        return student_id


class AdminCreateMixin:
    """Creating a profile rewrites the user's role, so only admins may do it."""

    def get_permissions(self):
        if self.action == 'create':
            return [IsAdminRole()]
        return super().get_permissions()


class StudentProfileViewSet(AdminCreateMixin, viewsets.ModelViewSet):
    queryset = StudentProfile.objects.select_related('user').prefetch_related('classrooms').all()
    serializer_class = StudentProfileSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = StudentProfileFilter
    search_fields = ['student_id', 'user__first_name', 'user__last_name', 'user__email', 'guardian_name']
    ordering_fields = ['student_id', 'enrollment_date', 'grade']

    def destroy(self, request, *args, **kwargs):
        profiles.delete_student_profile(kwargs['pk'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['get'])
    def classrooms(self, request, pk=None):
        classrooms = services.student_classrooms(pk)
        return Response(ClassRoomSerializer(classrooms, many=True).data)

    @action(detail=True, methods=['get'])
    def grades(self, request, pk=None):
        """Grades of the student; ``?classroom=`` adds the weighted average"""
        grades, average = grade_services.student_grades(pk, query_int(request, 'classroom', required=False))
        data = {'grades': GradeSerializer(grades, many=True).data}
        if average is not None:
            data['average'] = average
        return Response(data)

    @action(detail=True, methods=['get'])
    def attendance(self, request, pk=None):
        classroom_id = query_int(request, 'classroom', required=False)
        entries = attendance_services.student_attendance(
            pk,
            classroom_id=classroom_id,
            start_date=query_date(request, 'start_date'),
            end_date=query_date(request, 'end_date'),
        )
        stats = attendance_services.student_statistics(pk, classroom_id)
        return Response({
            'records': StudentAttendanceEntrySerializer(entries, many=True).data,
            'statistics': AttendanceStatisticsSerializer(stats).data,
        })


class TeacherProfileViewSet(AdminCreateMixin, viewsets.ModelViewSet):
    queryset = TeacherProfile.objects.select_related('user').prefetch_related('classrooms').all()
    serializer_class = TeacherProfileSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_class = TeacherProfileFilter
    search_fields = ['teacher_id', 'user__first_name', 'user__last_name', 'department']
    ordering_fields = ['teacher_id', 'hire_date']

    def destroy(self, request, *args, **kwargs):
        profiles.delete_teacher_profile(kwargs['pk'])
        return Response(status=status.HTTP_204_NO_CONTENT)

    @action(detail=True, methods=['get'])
    def classrooms(self, request, pk=None):
        classrooms = services.teacher_classrooms(pk)
        return Response(ClassRoomSerializer(classrooms, many=True).data)

    @action(detail=True, methods=['post', 'delete'])
    def subjects(self, request, pk=None):
        """POST adds a subject, DELETE removes one: body ``{"subject": "..."}``"""
        serializer = SubjectSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        subject = serializer.validated_data['subject']
        if request.method == 'DELETE':
            teacher = profiles.remove_subject(pk, subject)
        else:
            teacher = profiles.add_subject(pk, subject)
        return Response(self.get_serializer(teacher).data)
