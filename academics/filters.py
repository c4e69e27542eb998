import django_filters

from .models import ClassRoom, StudentProfile, TeacherProfile


class ClassRoomFilter(django_filters.FilterSet):
    class Meta:
        model = ClassRoom
        fields = ['subject', 'grade_level', 'semester', 'year', 'is_active', 'teacher']


class StudentProfileFilter(django_filters.FilterSet):
    classroom = django_filters.NumberFilter(field_name='classrooms')

    class Meta:
        model = StudentProfile
        fields = ['grade', 'classroom']


class TeacherProfileFilter(django_filters.FilterSet):
    subject = django_filters.CharFilter(method='filter_subject')

    class Meta:
        model = TeacherProfile
        fields = ['department', 'employment_status', 'subject']

    def filter_subject(self, queryset, name, value):
        # subjects is a JSON list; match one quoted element
        return queryset.filter(subjects__icontains=f'"{value}"')
