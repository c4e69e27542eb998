from django.contrib import admin
from django import forms
from django.contrib.auth import get_user_model
from .models import ClassRoom, Enrollment, StudentProfile, TeacherProfile
import uuid
import secrets, string

User = get_user_model()


def _create_user(cleaned_data, role):
    """Create the login behind a profile added from the admin."""
    username = cleaned_data.get('username')
    password = cleaned_data.get('password')
    first_name = cleaned_data.get('first_name') or ''
    last_name = cleaned_data.get('last_name') or ''
    email = cleaned_data.get('email') or f"{uuid.uuid4().hex[:10]}@example.invalid"

    if not username:
        base = (first_name or role).lower().replace(' ', '') or role
        username = f"{base}.{last_name.lower().replace(' ', '')}.{uuid.uuid4().hex[:6]}"

    if not password:
        alphabet = string.ascii_letters + string.digits
        password = ''.join(secrets.choice(alphabet) for _ in range(10))

    return User.objects.create_user(
        username=username,
        password=password,
        first_name=first_name,
        last_name=last_name,
        email=email,
        role=role,
    )


class ProfileAdminForm(forms.ModelForm):
    # Optional inline user creation
    user = forms.ModelChoiceField(queryset=User.objects.all(), required=False)
    username = forms.CharField(required=False, help_text="Fill to create a new user if 'user' is not selected.")
    password = forms.CharField(required=False, widget=forms.PasswordInput)
    first_name = forms.CharField(required=False)
    last_name = forms.CharField(required=False)
    email = forms.EmailField(required=False)

    role = None

    def clean(self):
        cleaned_data = super().clean()
        user = cleaned_data.get('user')
        username = cleaned_data.get('username')
        if not user and not self.instance.pk and not username:
            raise forms.ValidationError("Please select an existing user or provide a username to create one.")

        # If no existing user selected and username provided, check uniqueness
        if not user and username and User.objects.filter(username=username).exists():
            raise forms.ValidationError({
                'username': f"Username '{username}' is already taken. Please choose another username."
            })
        return cleaned_data

    def save(self, commit=True):
        instance = super().save(commit=False)
        user = self.cleaned_data.get('user')
        if not user and not self.instance.user_id:
            user = _create_user(self.cleaned_data, self.role)
        if user:
            if user.role != self.role:
                user.role = self.role
                user.save(update_fields=['role'])
            instance.user = user
        if commit:
            instance.save()
        return instance


class StudentProfileAdminForm(ProfileAdminForm):
    role = 'student'

    class Meta:
        model = StudentProfile
        fields = ['user', 'username', 'password', 'first_name', 'last_name', 'email', 'student_id', 'grade',
                  'enrollment_date', 'guardian_name', 'guardian_email', 'guardian_phone',
                  'emergency_contact_name', 'emergency_contact_relationship', 'emergency_contact_phone',
                  'date_of_birth', 'special_needs', 'medical_info']


class TeacherProfileAdminForm(ProfileAdminForm):
    role = 'teacher'

    class Meta:
        model = TeacherProfile
        fields = ['user', 'username', 'password', 'first_name', 'last_name', 'email', 'teacher_id', 'subjects',
                  'qualifications', 'hire_date', 'department', 'office_location', 'office_hours', 'bio',
                  'employment_status']


class EnrollmentInline(admin.TabularInline):
    model = Enrollment
    extra = 0
    readonly_fields = ['enrolled_at']


@admin.register(ClassRoom)
class ClassRoomAdmin(admin.ModelAdmin):
    list_display = ['id', 'name', 'subject', 'grade_level', 'teacher', 'semester', 'year', 'max_capacity', 'is_active']
    list_filter = ['semester', 'year', 'is_active']
    search_fields = ['name', 'subject']
    inlines = [EnrollmentInline]


@admin.register(StudentProfile)
class StudentProfileAdmin(admin.ModelAdmin):
    form = StudentProfileAdminForm
    list_display = ['id', 'user', 'student_id', 'grade', 'guardian_name', 'guardian_phone']
    search_fields = ['user__username', 'user__first_name', 'student_id']
    list_filter = ['grade']


@admin.register(TeacherProfile)
class TeacherProfileAdmin(admin.ModelAdmin):
    form = TeacherProfileAdminForm
    list_display = ['id', 'user', 'teacher_id', 'department', 'employment_status']
    search_fields = ['user__username', 'user__first_name', 'teacher_id']
    list_filter = ['department', 'employment_status']


@admin.register(Enrollment)
class EnrollmentAdmin(admin.ModelAdmin):
    list_display = ['id', 'student', 'classroom', 'enrolled_at']
    list_filter = ['classroom']
