from django.urls import path, include
from rest_framework.routers import DefaultRouter
from rest_framework_simplejwt.views import TokenRefreshView
from . import views

# DRF Router for ViewSets
router = DefaultRouter()
router.register(r'projects', views.ProjectViewSet, basename='project')
router.register(r'groups', views.GroupViewSet, basename='group')
router.register(r'invitations', views.InvitationViewSet, basename='invitation')
router.register(r'notifications', views.FacultyNotificationViewSet, basename='notification')
router.register(r'audit-logs', views.AuditLogViewSet, basename='audit-log')

urlpatterns = [
    # JWT Authentication endpoints
    path('token/', views.TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('token/refresh/', TokenRefreshView.as_view(), name='token_refresh'),

    path('health/', views.health_check, name='health_check'),

    # DRF ViewSet endpoints
    path('', include(router.urls)),
]
