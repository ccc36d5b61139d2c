"""
ARQ Background Worker for the scheduled automations
Fires appointment reminders and marketing automations on a fixed cadence
"""

import logging
import os

from arq.connections import RedisSettings
from arq.cron import cron

# Import all model files to ensure all models are registered
from . import models  # noqa: F401
from . import models_automation  # noqa: F401
from .config import AUTOMATION_CRON_INTERVAL_MINUTES
from .database import SessionLocal

logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
)
logger = logging.getLogger(__name__)
logging.getLogger("httpx").setLevel(logging.WARNING)


def get_redis_settings() -> RedisSettings:
    """Redis connection for the automation worker, from REDIS_URL (rediss:// enables TLS)"""
    settings = RedisSettings.from_dsn(os.getenv("REDIS_URL", "redis://localhost:6379"))
    settings.conn_timeout = 15
    settings.conn_retry_delay = 1
    return settings


def cron_minutes(interval: int) -> set[int]:
    """Minutes of the hour at which a job every `interval` minutes fires"""
    if interval <= 0 or 60 % interval != 0:
        raise ValueError(f"Cron interval must divide 60, got {interval}")
    return set(range(0, 60, interval))


async def appointment_reminders_task(ctx):
    """Cron job: send reminders for appointments entering their window"""
    from .services.appointment_reminders import run_appointment_reminders

    logger.info(f"Starting appointment reminders (job {ctx.get('job_id', 'unknown')})")

    db = SessionLocal()
    try:
        summary = await run_appointment_reminders(db)
        logger.info(
            f"Appointment reminders complete: {summary.sent} sent, {summary.failed} failed, {summary.skipped} skipped"
        )
        return summary.model_dump()
    except Exception as e:
        logger.error(f"❌ Appointment reminders failed: {str(e)}")
        raise
    finally:
        db.close()


async def marketing_automations_task(ctx):
    """Cron job: birthday and rescue messages for companies at their send time"""
    from .services.marketing_automations import run_marketing_automations

    logger.info(f"Starting marketing automations (job {ctx.get('job_id', 'unknown')})")

    db = SessionLocal()
    try:
        summary = await run_marketing_automations(db)
        logger.info(
            f"Marketing automations complete: {summary.sent} sent, {summary.failed} failed, {summary.skipped} skipped"
        )
        return summary.model_dump()
    except Exception as e:
        logger.error(f"❌ Marketing automations failed: {str(e)}")
        raise
    finally:
        db.close()


class WorkerSettings:
    """ARQ Worker Settings"""

    functions = [appointment_reminders_task, marketing_automations_task]
    redis_settings = get_redis_settings()

    max_jobs = int(os.getenv("ARQ_MAX_JOBS", "10"))
    # Pacing can stretch a large batch to many minutes
    job_timeout = int(os.getenv("ARQ_JOB_TIMEOUT", "3600"))
    keep_result = int(os.getenv("ARQ_KEEP_RESULT", "3600"))

    health_check_interval = 60

    # A failed run is not retried; the next tick picks up whatever was not attempted
    max_tries = 1

    cron_jobs = [
        cron(appointment_reminders_task, minute=cron_minutes(AUTOMATION_CRON_INTERVAL_MINUTES)),
        cron(marketing_automations_task, minute=cron_minutes(AUTOMATION_CRON_INTERVAL_MINUTES)),
    ]

    logger.info(f"🔧 ARQ Worker configured: max_jobs={max_jobs}, timeout={job_timeout}s")
