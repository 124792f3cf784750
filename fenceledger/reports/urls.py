from django.urls import path
from . import views

urlpatterns = [
    path('reports/summary', views.dashboard_summary, name='dashboard-summary'),
]
