from django.contrib import admin
from .models import Grade


@admin.register(Grade)
class GradeAdmin(admin.ModelAdmin):
    list_display = ['id', 'student', 'classroom', 'assignment_name', 'assignment_type', 'score', 'max_score', 'weightage', 'late_submission']
    list_filter = ['assignment_type', 'late_submission', 'classroom']
    search_fields = ['assignment_name', 'student__student_id', 'student__user__first_name', 'student__user__last_name']
    date_hierarchy = 'submission_date'
    readonly_fields = ['late_submission', 'created_at', 'updated_at']
