from django.urls import path, include
from rest_framework.routers import DefaultRouter
from .views import (
    ExaminationViewSet, ResultViewSet, GradingViewSet, CommentBandViewSet,
    StudentReportCardView, ClassReportCardView,
)

router = DefaultRouter()
router.register('examinations', ExaminationViewSet)
router.register('results', ResultViewSet)
router.register('gradings', GradingViewSet)
router.register('comments', CommentBandViewSet)

urlpatterns = [
    path('', include(router.urls)),
    path('report-cards/student/<int:student_id>/', StudentReportCardView.as_view(), name='student-report-card'),
    path('report-cards/class/<int:classroom_id>/', ClassReportCardView.as_view(), name='class-report-card'),
]
