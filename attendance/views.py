from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, status, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from backend.query import query_date, query_int
from .models import Attendance
from .serializers import (
    AttendanceSerializer,
    AttendanceStatisticsSerializer,
    RecordInputSerializer,
    RecordUpdateSerializer,
    StudentAttendanceEntrySerializer,
)
from . import services


class AttendanceViewSet(viewsets.ModelViewSet):
    queryset = Attendance.objects.select_related('classroom', 'taken_by').prefetch_related('records__student__user').all()
    serializer_class = AttendanceSerializer
    filter_backends = [DjangoFilterBackend, filters.OrderingFilter]
    filterset_fields = ['classroom', 'is_complete']
    ordering_fields = ['date', 'created_at']

    def get_queryset(self):
        qs = super().get_queryset()
        start_date = query_date(self.request, 'start_date')
        end_date = query_date(self.request, 'end_date')
        if start_date:
            qs = qs.filter(date__gte=start_date)
        if end_date:
            qs = qs.filter(date__lte=end_date)
        return qs

    def create(self, request, *args, **kwargs):
        serializer = self.get_serializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        attendance = serializer.save()
        return Response(self.get_serializer(attendance).data, status=status.HTTP_201_CREATED)

    @action(detail=False, methods=['get'], url_path='by-date')
    def by_date(self, request):
        """Attendance sheet of a classroom on one day"""
        attendance = services.attendance_by_date(
            query_int(request, 'classroom'),
            query_date(request, 'date', required=True),
        )
        if attendance is None:
            return Response({'success': True, 'data': None})
        return Response(self.get_serializer(attendance).data)

    @action(detail=False, methods=['get'])
    def statistics(self, request):
        """Status counts across every attendance day of a classroom"""
        stats = services.classroom_statistics(query_int(request, 'classroom'))
        return Response(AttendanceStatisticsSerializer(stats).data)

    @action(detail=False, methods=['get'], url_path='student-statistics')
    def student_statistics(self, request):
        stats = services.student_statistics(
            query_int(request, 'student'),
            query_int(request, 'classroom', required=False),
        )
        return Response(AttendanceStatisticsSerializer(stats).data)

    @action(detail=False, methods=['get'], url_path='student-records')
    def student_records(self, request):
        """One student's own entries, newest day first"""
        entries = services.student_attendance(
            query_int(request, 'student'),
            classroom_id=query_int(request, 'classroom', required=False),
            start_date=query_date(request, 'start_date'),
            end_date=query_date(request, 'end_date'),
        )
        return Response(StudentAttendanceEntrySerializer(entries, many=True).data)

    @action(detail=True, methods=['post'], url_path='records')
    def add_record(self, request, pk=None):
        serializer = RecordInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data
        attendance = services.add_student_record(
            pk,
            data['student'].pk,
            status=data['status'],
            remarks=data['remarks'],
            minutes_late=data['minutes_late'],
        )
        return Response(self.get_serializer(self._reload(attendance)).data, status=status.HTTP_201_CREATED)

    @action(detail=True, methods=['patch', 'delete'], url_path=r'records/(?P<student_id>\d+)')
    def record(self, request, pk=None, student_id=None):
        if request.method == 'DELETE':
            attendance = services.remove_student_record(pk, student_id)
        else:
            serializer = RecordUpdateSerializer(data=request.data)
            serializer.is_valid(raise_exception=True)
            attendance = services.update_student_record(pk, student_id, **serializer.validated_data)
        return Response(self.get_serializer(self._reload(attendance)).data)

    def _reload(self, attendance):
        return Attendance.objects.prefetch_related('records__student__user').get(pk=attendance.pk)
