from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import ClassRoomViewSet, StudentProfileViewSet, TeacherProfileViewSet

router = DefaultRouter()
router.register('classrooms', ClassRoomViewSet)
router.register('students', StudentProfileViewSet)
router.register('teachers', TeacherProfileViewSet)

urlpatterns = [
    path('', include(router.urls)),
]
