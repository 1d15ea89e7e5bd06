from django.urls import path

from applications import views as application_views
from . import views

urlpatterns = [
    path("jobs", views.job_collection, name="job_collection"),
    path("jobs/employer", views.employer_jobs, name="employer_jobs"),
    path("jobs/<str:job_id>", views.job_detail, name="job_detail"),
    path("jobs/<str:job_id>/applications", application_views.job_applications, name="job_applications"),
]
