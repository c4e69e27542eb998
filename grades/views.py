import csv

from django.http import HttpResponse
from django_filters.rest_framework import DjangoFilterBackend
from rest_framework import filters, viewsets
from rest_framework.decorators import action
from rest_framework.response import Response

from backend.query import query_int
from .models import Grade
from .serializers import GradeSerializer, GradeStatisticsSerializer, StudentAverageSerializer
from . import services


class GradeViewSet(viewsets.ModelViewSet):
    queryset = Grade.objects.select_related('student__user', 'classroom', 'graded_by').all()
    serializer_class = GradeSerializer
    filter_backends = [DjangoFilterBackend, filters.SearchFilter, filters.OrderingFilter]
    filterset_fields = ['student', 'classroom', 'assignment_type', 'late_submission']
    search_fields = ['assignment_name', 'student__student_id', 'student__user__first_name', 'student__user__last_name']
    ordering_fields = ['submission_date', 'score', 'weightage']

    @action(detail=False, methods=['get'])
    def average(self, request):
        """Weighted average of one student's grades in one classroom"""
        student_id = query_int(request, 'student')
        classroom_id = query_int(request, 'classroom')
        average = services.student_average(student_id, classroom_id)
        serializer = StudentAverageSerializer({
            'student': student_id,
            'classroom': classroom_id,
            'average': average,
        })
        return Response(serializer.data)

    @action(detail=False, methods=['get'])
    def statistics(self, request):
        """Grade statistics across a whole classroom"""
        stats = services.classroom_statistics(query_int(request, 'classroom'))
        return Response(GradeStatisticsSerializer(stats).data)

    @action(detail=False, methods=['get'])
    def export_csv(self, request):
        """Export grades to CSV"""
        qs = self.filter_queryset(self.get_queryset())

        response = HttpResponse(content_type='text/csv; charset=utf-8-sig')
        response['Content-Disposition'] = 'attachment; filename="grades_export.csv"'

        writer = csv.writer(response)
        writer.writerow(['Serial', 'Student ID', 'Student Name', 'Classroom', 'Assignment', 'Type', 'Score', 'Max Score', 'Percentage', 'Weightage', 'Late'])

        for idx, grade in enumerate(qs, start=1):
            student = grade.student
            writer.writerow([
                idx,
                student.student_id,
                student.user.full_name,
                grade.classroom.name,
                grade.assignment_name,
                grade.assignment_type,
                grade.score,
                grade.max_score,
                grade.percentage,
                grade.weightage,
                'Yes' if grade.late_submission else 'No',
            ])

        return response
