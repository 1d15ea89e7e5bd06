import random

from django.contrib.auth import get_user_model
from django.core.files.base import ContentFile
from django.core.management.base import BaseCommand
from django.db import transaction
from django.db.models import Q

from applications.models import Application, ApplicationStatus
from applications.services import submit_application, update_status
from applications.storage import delete_resumes_on_commit
from jobs.models import Currency, JobStatus, JobType
from jobs.services import create_job, update_job

User = get_user_model()


class Command(BaseCommand):
    help = "Seed demo data (employers, candidates, jobs, applications) through the regular services."

    def add_arguments(self, parser):
        parser.add_argument("--prefix", type=str, default="demo")
        parser.add_argument("--employers", type=int, default=4)
        parser.add_argument("--candidates", type=int, default=10)
        parser.add_argument("--jobs-per-employer", type=int, default=4)
        parser.add_argument("--applications-per-candidate", type=int, default=3)
        parser.add_argument("--password", type=str, default="DemoPass123!")
        parser.add_argument("--seed", type=int, default=42)
        parser.add_argument("--wipe", action="store_true", help="Delete existing users starting with prefix before seeding.")

    def _requirements(self, rnd, minimum=2, maximum=4):
        pool = [
            "Python",
            "Django",
            "PostgreSQL",
            "React",
            "TypeScript",
            "Docker",
            "AWS",
            "Linux",
            "SQL",
            "Figma",
            "REST APIs",
            "CI/CD",
        ]
        return rnd.sample(pool, rnd.randint(minimum, maximum))

    def _make_user(self, username, name, role, password, company=""):
        email = f"{username}@example.com"
        user, _ = User.objects.get_or_create(
            username=email,
            defaults={"email": email, "name": name, "role": role, "company": company},
        )
        # Keep demo credentials predictable.
        user.name = name
        user.role = role
        user.company = company
        user.is_active = True
        user.set_password(password)
        user.save()
        return user

    @transaction.atomic
    def handle(self, *args, **opts):
        rnd = random.Random(opts["seed"])
        prefix = (opts["prefix"] or "demo").strip().lower()
        employers_n = max(1, int(opts["employers"]))
        candidates_n = max(1, int(opts["candidates"]))
        jobs_per_employer = max(1, int(opts["jobs_per_employer"]))
        apps_per_candidate = max(0, int(opts["applications_per_candidate"]))
        password = opts["password"]

        if opts["wipe"]:
            seeded = Q(candidate__username__startswith=f"{prefix}_") | Q(job__employer__username__startswith=f"{prefix}_")
            delete_resumes_on_commit(Application.objects.filter(seeded).values_list("resume", flat=True))
            User.objects.filter(username__startswith=f"{prefix}_").delete()

        company_names = ["NorthBridge Labs", "Harbor Metrics", "BluePeak Systems", "CedarStone Digital"]
        job_templates = [
            ("Backend Developer", "Build and maintain APIs, background jobs, and PostgreSQL schemas."),
            ("Frontend Engineer", "Develop responsive interfaces with modern JavaScript and API integrations."),
            ("Data Analyst", "Transform product and hiring data into dashboards and actionable insights."),
            ("DevOps Engineer", "Automate CI/CD pipelines, deployments, and runtime monitoring."),
            ("QA Engineer", "Write test cases, automate regression suites, and improve release quality."),
        ]
        locations = ["London", "Berlin", "Bangalore", "New York", "Remote"]

        created_jobs = []
        employers = []
        for i in range(1, employers_n + 1):
            company = f"{company_names[(i - 1) % len(company_names)]} {i}"
            employer = self._make_user(f"{prefix}_emp_{i}", f"Hiring Manager {i}", User.Role.EMPLOYER, password, company)
            employers.append(employer)

            for j in range(1, jobs_per_employer + 1):
                title_base, description = job_templates[(i + j - 2) % len(job_templates)]
                salary_min = rnd.randint(35, 95) * 1000
                job = create_job(
                    employer,
                    {
                        "title": f"{title_base} - Team {i}.{j}",
                        "company": company,
                        "location": rnd.choice(locations),
                        "type": rnd.choice(JobType.values),
                        "description": description,
                        "requirements": self._requirements(rnd),
                        "salary": {
                            "min": salary_min,
                            "max": salary_min + rnd.randint(8, 35) * 1000,
                            "currency": rnd.choice(Currency.values),
                        },
                    },
                )
                created_jobs.append(job)

        candidates = [
            self._make_user(f"{prefix}_candidate_{i}", f"Demo Candidate {i}", User.Role.CANDIDATE, password)
            for i in range(1, candidates_n + 1)
        ]

        applications_created = 0
        for candidate in candidates:
            for job in rnd.sample(created_jobs, k=min(apps_per_candidate, len(created_jobs))):
                if Application.objects.filter(job=job, candidate=candidate).exists():
                    continue
                resume = ContentFile(
                    f"Resume for {candidate.name}\nEmail: {candidate.email}\n".encode("utf-8"),
                    name=f"{candidate.username.split('@')[0]}.pdf",
                )
                application = submit_application(
                    candidate,
                    job.pk,
                    "I am interested in this role and believe my background is a strong fit.",
                    resume,
                )
                applications_created += 1
                status = rnd.choices(ApplicationStatus.values, weights=[40, 25, 15, 5, 15], k=1)[0]
                if status != ApplicationStatus.PENDING:
                    update_status(job.employer, application.pk, status, note="Seeded status change")

        # Close a few postings so both states show up.
        for job in rnd.sample(created_jobs, k=max(1, len(created_jobs) // 5)):
            update_job(job.employer, job.pk, {"status": JobStatus.CLOSED})

        self.stdout.write(self.style.SUCCESS("Seeded demo data successfully."))
        self.stdout.write(f"Created/updated employers: {employers_n}")
        self.stdout.write(f"Created/updated candidates: {candidates_n}")
        self.stdout.write(f"Created jobs: {len(created_jobs)}")
        self.stdout.write(f"Created applications: {applications_created}")
        self.stdout.write("")
        self.stdout.write("Sample credentials:")
        for user in employers[:2] + candidates[:2]:
            self.stdout.write(f"  {user.email} / {password}")
