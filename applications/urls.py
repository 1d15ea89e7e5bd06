from django.urls import path
from . import views

urlpatterns = [
    path("applications", views.application_collection, name="application_collection"),
    path("applications/job/<str:job_id>", views.job_applications, name="applications_for_job"),
    path("applications/<str:application_id>", views.application_detail, name="application_detail"),
]
