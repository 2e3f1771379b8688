"""Contact submissions.

Submissions are recorded as a structured log event. Delivery (email,
database) is not wired up; this class is the seam where it would go.
Sender details are logged hashed and the message body is never logged.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone

from portfolio_api.core.logging import hash_identifier
from portfolio_api.schemas.contact import ContactRequest

logger = logging.getLogger(__name__)


class ContactService:
    def submit(self, submission: ContactRequest) -> None:
        domain = submission.email.rsplit("@", 1)[-1]

        logger.info(
            "contact.submission",
            extra={
                "sender_hash": hash_identifier(submission.name),
                "email_hash": hash_identifier(submission.email),
                "email_domain": domain,
                "message_chars": len(submission.message),
                "received_at": datetime.now(timezone.utc).isoformat(),
            },
        )
