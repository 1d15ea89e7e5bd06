def serialize_application(application, *, with_job=False, with_candidate=False, with_history=False) -> dict:
    data = {
        "id": application.pk,
        "job": application.job_id,
        "candidate": application.candidate_id,
        "status": application.status,
        "coverLetter": application.cover_letter,
        "resume": application.resume,
        "createdAt": application.created_at,
        "updatedAt": application.updated_at,
        "version": application.version,
    }
    if with_job:
        job = application.job
        data["job"] = {"id": job.pk, "title": job.title, "company": job.company, "location": job.location}
    if with_candidate:
        candidate = application.candidate
        data["candidate"] = {
            "id": candidate.pk,
            "name": candidate.name,
            "email": candidate.email,
            "phone": candidate.phone,
        }
    if with_history:
        data["history"] = [
            {"status": event.status, "note": event.note, "actor": event.actor_id, "createdAt": event.created_at}
            for event in application.events.all()
        ]
    return data
