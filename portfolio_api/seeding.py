"""
One-time population of example contact form submissions.

Several instances of the service may boot against the same datastore at once.
The first one to insert the status record at ``SEED_STATUS_ID`` owns seeding;
everyone else sees the record already present and skips. The batch insert and
the completion mark share a single transaction, so a crash or error leaves
either the whole batch or none of it.
"""

from __future__ import annotations

import logging
import time
import uuid
from dataclasses import dataclass
from typing import Callable

from portfolio_api.db import DbClient, DuplicateRecordError

logger = logging.getLogger(__name__)

# Every process must check the same record. Never change this.
SEED_STATUS_ID = "000000000000000000000001"

HOUR = 3600
DAY = 24 * HOUR


class SeedError(Exception):
    """Base class for mock data population failures."""


class LockContentionFailure(SeedError):
    """The seeding lock could not be taken for a reason other than contention."""


class TransactionFailure(SeedError):
    """The batch insert or the completion update failed after taking the lock."""


@dataclass(frozen=True)
class MockSubmission:
    name: str
    email: str
    subject: str
    message: str
    age_seconds: int

    def to_record(self, now: int) -> dict:
        return {
            "name": self.name,
            "email": self.email,
            "subject": self.subject,
            "message": self.message,
            "submission_timestamp": now - self.age_seconds,
        }


# Oldest first; ages strictly decrease down the list.
MOCK_SUBMISSIONS: tuple[MockSubmission, ...] = (
    MockSubmission(
        name="Rajesh Kumar",
        email="rajesh.kumar@example.com",
        subject="Collaboration Opportunity",
        message=(
            "Hi Kaviya, I came across your portfolio and I'm impressed with your "
            "full-stack development skills. I'd like to discuss a potential "
            "collaboration on a MERN stack project. Please let me know if you're "
            "interested."
        ),
        age_seconds=7 * DAY,
    ),
    MockSubmission(
        name="Priya Sharma",
        email="priya.sharma@techcorp.com",
        subject="Job Opportunity - Senior Full Stack Developer",
        message=(
            "Hello Kaviya, We are looking for a talented Full Stack Developer to "
            "join our team. Your experience with React, Node.js, and MongoDB "
            "aligns perfectly with our requirements. Would you be available for a "
            "discussion?"
        ),
        age_seconds=5 * DAY,
    ),
    MockSubmission(
        name="Arun Patel",
        email="arun.patel@startup.io",
        subject="Freelance Project Inquiry",
        message=(
            "Hi, I'm working on a weather application and noticed your weather "
            "project in your portfolio. I'd love to discuss a freelance "
            "opportunity to build something similar with additional features. "
            "Let me know your availability."
        ),
        age_seconds=3 * DAY,
    ),
    MockSubmission(
        name="Sneha Reddy",
        email="sneha.reddy@designstudio.com",
        subject="UI/UX Collaboration",
        message=(
            "Hello Kaviya, I'm a UI/UX designer and I'm impressed by your "
            "portfolio design. I'd like to collaborate on some projects where we "
            "can combine our skills. Are you open to freelance work?"
        ),
        age_seconds=2 * DAY,
    ),
    MockSubmission(
        name="Vikram Singh",
        email="vikram.singh@gmail.com",
        subject="Question about GitHub Profile Finder",
        message=(
            "Hey Kaviya, I really liked your GitHub Profile Finder project. I'm a "
            "beginner developer and would love to know more about how you "
            "implemented it. Could you share some insights or resources?"
        ),
        age_seconds=DAY,
    ),
    MockSubmission(
        name="Meera Iyer",
        email="meera.iyer@webagency.com",
        subject="Portfolio Website Development",
        message=(
            "Hi Kaviya, Our agency is looking for a developer to build portfolio "
            "websites for our clients. Your portfolio is exactly the kind of "
            "quality we're looking for. Would you be interested in taking on "
            "such projects?"
        ),
        age_seconds=12 * HOUR,
    ),
    MockSubmission(
        name="Karthik Menon",
        email="karthik.menon@example.com",
        subject="Mentorship Request",
        message=(
            "Hello Kaviya, I'm a student learning full-stack development and I'm "
            "really inspired by your work. Would you be open to mentoring or "
            "providing guidance on my learning journey? I'd really appreciate any "
            "help."
        ),
        age_seconds=6 * HOUR,
    ),
    MockSubmission(
        name="Divya Nair",
        email="divya.nair@techsolutions.in",
        subject="Recipe Finder App - Partnership",
        message=(
            "Hi Kaviya, I run a food blog and I'm interested in integrating a "
            "recipe finder feature similar to your project. Would you be "
            "interested in discussing a partnership or custom development work?"
        ),
        age_seconds=2 * HOUR,
    ),
    MockSubmission(
        name="Arjun Desai",
        email="arjun.desai@innovate.com",
        subject="Speaking Opportunity at Tech Conference",
        message=(
            "Hello Kaviya, We're organizing a tech conference in Coimbatore and "
            "would love to have you as a speaker to share your experience as a "
            "Full Stack Developer. Please let us know if you'd be interested."
        ),
        age_seconds=HOUR,
    ),
    MockSubmission(
        name="Lakshmi Krishnan",
        email="lakshmi.k@devteam.com",
        subject="Budget Tracking App Inquiry",
        message=(
            "Hi Kaviya, I saw your budget tracking application and I'm interested "
            "in having a similar app developed for our small business. Could we "
            "schedule a call to discuss the requirements and pricing?"
        ),
        age_seconds=HOUR // 2,
    ),
)


def new_instance_token() -> str:
    return f"instance-{uuid.uuid4().hex[:13]}"


class MockDataSeeder:
    """
    Runs the mock data population at most once per instance and at most once
    per datastore.

    The application keeps one seeder per process, so ``population_attempted``
    guards against repeated boot hooks. Tests build a fresh seeder per case.
    """

    def __init__(
        self,
        db: DbClient,
        *,
        clock: Callable[[], float] = time.time,
        token_factory: Callable[[], str] = new_instance_token,
    ):
        self.db = db
        self.clock = clock
        self.token_factory = token_factory
        self.population_attempted = False

    def _now(self) -> int:
        return int(self.clock())

    def run(self) -> bool:
        """
        Populate the datastore with mock submissions.

        Returns:
            True if this call wrote the batch, False if it was skipped.

        Raises:
            LockContentionFailure: If the status record could not be written.
            TransactionFailure: If the batch or its completion mark failed.
        """
        if self.population_attempted:
            logger.info("Population already attempted in this process, skipping")
            return False
        self.population_attempted = True

        try:
            acquired = self.db.insert_seed_status_if_absent(
                SEED_STATUS_ID,
                {
                    "executed": True,
                    "timestamp": self._now(),
                    "instance": self.token_factory(),
                },
            )
        except DuplicateRecordError:
            logger.info("Another process is handling population, skipping")
            return False
        except Exception as exc:
            logger.exception("Failed to initialize mock data population")
            raise LockContentionFailure(str(exc)) from exc

        if not acquired:
            logger.info("Mock data flag already exists, skipping execution")
            return False

        logger.info("Starting mock data population...")
        try:
            with self.db.transaction() as session:
                now = self._now()
                self.db.insert_submissions(
                    [item.to_record(now) for item in MOCK_SUBMISSIONS],
                    session=session,
                )
                self.db.update_seed_status(
                    SEED_STATUS_ID,
                    {"completed": True, "completed_timestamp": self._now()},
                    session=session,
                )
        except Exception as exc:
            logger.exception("Failed to populate mock data during transaction")
            self._mark_failed(exc)
            raise TransactionFailure(str(exc)) from exc

        logger.info("Successfully populated %d mock submissions", len(MOCK_SUBMISSIONS))
        return True

    def _mark_failed(self, error: Exception) -> None:
        try:
            self.db.update_seed_status(
                SEED_STATUS_ID,
                {
                    "failed": True,
                    "failed_timestamp": self._now(),
                    "error": f"{type(error).__name__}: {error}",
                },
            )
        except Exception:
            # Logged only; the caller re-raises the transaction error.
            logger.exception("Failed to update error state")
