"""
Audit trail for account and health record access.

Events are rendered as one JSON object per line on the ``audit`` logger,
with or without a Flask request in progress.
"""
import os
import logging
import structlog
from flask import has_request_context, request

AUDIT_LOGGER = 'audit'


def configure_logging(level: str = 'INFO', audit_log_file: str = None):
    """Set the root log level and route audit events through structlog as JSON."""
    logging.basicConfig(
        level=getattr(logging, str(level).upper(), logging.INFO),
        format='%(asctime)s %(levelname)s %(name)s: %(message)s',
    )

    structlog.configure(
        processors=[
            structlog.stdlib.filter_by_level,
            structlog.stdlib.add_logger_name,
            structlog.stdlib.add_log_level,
            structlog.processors.TimeStamper(fmt='iso', utc=True, key='timestamp'),
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        context_class=dict,
        logger_factory=structlog.stdlib.LoggerFactory(),
        wrapper_class=structlog.stdlib.BoundLogger,
        cache_logger_on_first_use=True,
    )

    audit = logging.getLogger(AUDIT_LOGGER)
    audit.setLevel(logging.INFO)
    if audit_log_file:
        _attach_audit_file(audit, audit_log_file)


def _attach_audit_file(audit: logging.Logger, path: str):
    path = os.path.abspath(path)
    if any(getattr(h, 'baseFilename', None) == path for h in audit.handlers):
        return
    os.makedirs(os.path.dirname(path), exist_ok=True)
    handler = logging.FileHandler(path)
    handler.setLevel(logging.INFO)
    handler.setFormatter(logging.Formatter('%(message)s'))
    audit.addHandler(handler)


def _request_origin() -> tuple:
    """Client address and user agent; ``local`` for in-process callers."""
    if not has_request_context():
        return 'local', 'local'
    return (request.remote_addr or 'unknown',
            request.headers.get('User-Agent', 'unknown'))


def audit_log(action: str, resource_type: str, resource_id: str = None,
              details: dict = None, user_id: str = None):
    """
    Record one audit event.

    Args:
        action: CREATE, READ, UPDATE, DELETE, LOGIN, LOGIN_FAILED or LOGOUT
        resource_type: user, session or reading
        resource_id: id of the record touched, if any
        details: extra context; never include passwords
        user_id: acting user, ``anonymous`` when unknown
    """
    client_ip, user_agent = _request_origin()
    structlog.get_logger(AUDIT_LOGGER).info(
        'audit_event',
        action=action,
        resource_type=resource_type,
        resource_id=resource_id,
        user_id=user_id or 'anonymous',
        client_ip=client_ip,
        user_agent=user_agent,
        details=details or {},
    )
