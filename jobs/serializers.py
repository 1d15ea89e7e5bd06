"""Plain-dict renderings of jobs for ``JsonResponse``."""


def serialize_job(job, *, with_employer=False, with_applications=False) -> dict:
    data = {
        "id": job.pk,
        "title": job.title,
        "company": job.company,
        "location": job.location,
        "type": job.job_type,
        "description": job.description,
        "requirements": list(job.requirements or []),
        "salary": {
            "min": job.salary_min,
            "max": job.salary_max,
            "currency": job.salary_currency,
        },
        "status": job.status,
        "employer": job.employer.public_identity() if with_employer else job.employer_id,
        "applications": job.application_ids,
        "createdAt": job.created_at,
        "updatedAt": job.updated_at,
        "version": job.version,
    }
    if with_applications:
        data["applications"] = [
            {
                "id": application.pk,
                "status": application.status,
                "createdAt": application.created_at,
                "updatedAt": application.updated_at,
            }
            for application in job.applications.all()
        ]
    return data
