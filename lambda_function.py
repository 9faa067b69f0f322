"""AWS Lambda handler for the WordPress events webhook."""
import base64
import binascii
import hmac
import json
import logging
import os
import time
from typing import Any, Dict, Optional

from log_config import setup_logging
from storage.dynamodb_manager import DynamoDBManager
from storage.media_storage import S3MediaStorage
from sync.media import MediaAcquirer
from sync.orchestrator import EventSyncError, SyncOrchestrator
from sync.upserter import EntityUpserter
from wordpress.models import WPEvent
from wordpress.normalize import now_iso

SECRET_HEADER = 'x-webhook-secret'


def _response(status_code: int, body: Dict[str, Any]) -> Dict[str, Any]:
    return {
        'statusCode': status_code,
        'headers': {'Content-Type': 'application/json'},
        'body': json.dumps(body)
    }


def _get_header(event: Dict[str, Any], name: str) -> Optional[str]:
    """Case-insensitive header lookup on an API Gateway proxy event."""
    headers = event.get('headers') or {}
    for key, value in headers.items():
        if key.lower() == name:
            return value
    return None


def verify_secret(header: Optional[str], expected: Optional[str]) -> bool:
    """
    Compare the webhook secret header against the configured secret.

    Args:
        header: Value of the secret header, if sent
        expected: Configured secret, if any

    Returns:
        True only when both are present and equal (constant-time compare)
    """
    if not expected or not header:
        return False

    provided = header.encode('utf-8')
    configured = expected.encode('utf-8')
    if len(provided) != len(configured):
        return False
    return hmac.compare_digest(provided, configured)


def _parse_body(event: Dict[str, Any]) -> Any:
    body = event.get('body') or ''
    if event.get('isBase64Encoded'):
        body = base64.b64decode(body).decode('utf-8')
    return json.loads(body)


def lambda_handler(event: Dict[str, Any], context: Any) -> Dict[str, Any]:
    """
    Main Lambda handler for WordPress event webhooks.

    Args:
        event: API Gateway proxy event carrying {"event": {...}} as body
        context: Lambda context object

    Returns:
        Response dict with statusCode and JSON body
    """
    # Read configuration from environment variables
    table_name = os.environ.get('TABLE_NAME', 'events-cms')
    media_bucket = os.environ.get('MEDIA_BUCKET', 'events-cms-media')
    media_prefix = os.environ.get('MEDIA_PREFIX', 'media/')
    log_level = os.environ.get('LOG_LEVEL', 'INFO')
    timeout_seconds = int(os.environ.get('IMAGE_TIMEOUT_SECONDS', '30'))
    webhook_secret = os.environ.get('WORDPRESS_WEBHOOK_SECRET')

    setup_logging(log_level)
    logger = logging.getLogger(__name__)
    start_time = time.time()

    if not verify_secret(_get_header(event, SECRET_HEADER), webhook_secret):
        logger.warning("Webhook rejected: missing or invalid secret")
        return _response(401, {'error': 'Unauthorized'})

    try:
        body = _parse_body(event)
    except (ValueError, binascii.Error) as e:
        logger.warning(f"Webhook rejected: invalid JSON body ({e})")
        return _response(400, {'error': 'Invalid JSON'})

    raw_event = body.get('event') if isinstance(body, dict) else None
    if (
        not isinstance(raw_event, dict)
        or not raw_event.get('id')
        or not raw_event.get('start_date')
    ):
        logger.warning("Webhook rejected: missing event.id or event.start_date")
        return _response(
            400,
            {'error': 'Missing required fields: event.id and event.start_date'}
        )

    wp_event = WPEvent.from_dict(raw_event)
    logger.info(
        f"Webhook received for WP event {wp_event.id}",
        extra={'table_name': table_name, 'media_bucket': media_bucket}
    )

    try:
        store = DynamoDBManager(table_name=table_name)
        media_storage = S3MediaStorage(bucket_name=media_bucket, prefix=media_prefix)
        orchestrator = SyncOrchestrator(
            upserter=EntityUpserter(store, now_iso()),
            media_acquirer=MediaAcquirer(store, media_storage, timeout=timeout_seconds)
        )
    except Exception as e:
        logger.error(
            f"Failed to initialize sync components: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return _response(500, {
            'message': 'Sync failed',
            'error': str(e),
            'error_type': type(e).__name__
        })

    try:
        result = orchestrator.sync_event(wp_event)
    except EventSyncError as e:
        return _response(422, {
            'error': f"Event upsert failed: {e}",
            'details': e.result.to_dict()
        })

    duration = time.time() - start_time
    logger.info(
        f"Webhook sync completed for WP event {wp_event.id}",
        extra={
            'duration_seconds': round(duration, 2),
            'event_action': result.event['action']
        }
    )
    return _response(200, {'ok': True, **result.to_dict()})
