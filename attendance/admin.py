from django.contrib import admin
from .models import Attendance, AttendanceRecord


class AttendanceRecordInline(admin.TabularInline):
    model = AttendanceRecord
    extra = 0


@admin.register(Attendance)
class AttendanceAdmin(admin.ModelAdmin):
    list_display = ['id', 'classroom', 'date', 'taken_by', 'is_complete']
    list_filter = ['date', 'is_complete']
    inlines = [AttendanceRecordInline]


@admin.register(AttendanceRecord)
class AttendanceRecordAdmin(admin.ModelAdmin):
    list_display = ['id', 'attendance', 'student', 'status', 'minutes_late']
    list_filter = ['status']
