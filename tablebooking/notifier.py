"""
Reservation confirmation emails.

The API process only enqueues a job on a Redis list. A separate worker,
started with ``python -m tablebooking.notifier``, pops the jobs and sends
the emails over SMTP.
"""

import asyncio
import json
import logging
import smtplib
from datetime import datetime
from email.message import EmailMessage

import redis.exceptions

from tablebooking.config import (
    EMAIL_FROM,
    EMAIL_PASS,
    EMAIL_USER,
    LOG_LEVEL,
    NOTIFICATION_QUEUE,
    SMTP_HOST,
    SMTP_PORT,
)
from tablebooking.redis import get_redis_session, redis_execute

logger = logging.getLogger(__name__)


class RedisNotifier:
    def __init__(self, redis_client, queue: str = NOTIFICATION_QUEUE):
        self.redis_client = redis_client
        self.queue = queue

    async def send_reservation_confirmation(self, user, reservation, table):
        job = {
            "reservation_id": reservation.id,
            "name": user.name,
            "email": user.email,
            "table_number": table.table_number,
            "date": reservation.date.isoformat(),
            "guests": reservation.guests,
        }
        await redis_execute(self.redis_client, "lpush", self.queue, json.dumps(job))
        logger.info("Queued confirmation for reservation %s", reservation.id)


def build_confirmation_email(job: dict, sender: str = EMAIL_FROM) -> EmailMessage:
    when = job["date"]
    if isinstance(when, str):
        when = datetime.fromisoformat(when)

    message = EmailMessage()
    message["Subject"] = "Reservation confirmation"
    message["From"] = sender
    message["To"] = job["email"]
    message.set_content(
        f"Hello {job['name']},\n\n"
        "Thank you for choosing our restaurant. Your reservation is registered.\n\n"
        f"Table number: {job['table_number']}\n"
        f"Date and time: {when:%B %d, %Y %I:%M %p}\n"
        f"Guests: {job['guests']}\n\n"
        "If you need to change your reservation, just get in touch with us.\n"
    )
    return message


def deliver(message: EmailMessage):
    with smtplib.SMTP(SMTP_HOST, SMTP_PORT, timeout=30) as smtp:
        smtp.starttls()
        if EMAIL_USER:
            smtp.login(EMAIL_USER, EMAIL_PASS)
        smtp.send_message(message)


async def process_job(raw: str, send=deliver) -> bool:
    try:
        job = json.loads(raw)
        message = build_confirmation_email(job)
        await asyncio.to_thread(send, message)
    except Exception:
        logger.exception("Failed to deliver confirmation job %s", raw)
        return False
    logger.info("Confirmation sent for reservation %s", job.get("reservation_id"))
    return True


async def run_mailer(queue: str = NOTIFICATION_QUEUE, timeout: int = 5):
    redis_client = await get_redis_session()
    logger.info("Mailer is listening on %s", queue)
    try:
        while True:
            try:
                item = await redis_client.brpop(queue, timeout=timeout)
            except redis.exceptions.ConnectionError:
                logger.exception("Lost connection to Redis, retrying")
                await asyncio.sleep(timeout)
                continue
            if item is None:
                continue
            _, raw = item
            await process_job(raw)
    finally:
        await redis_client.aclose()


if __name__ == "__main__":
    logging.basicConfig(level=LOG_LEVEL, format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    try:
        asyncio.run(run_mailer())
    except KeyboardInterrupt:
        logger.info("Mailer stopped.")
