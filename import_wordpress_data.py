"""Bulk import of WordPress export files into the events CMS."""
import argparse
import logging
import os
import sys
import time
from typing import List, Optional

from log_config import setup_logging
from storage.dynamodb_manager import DynamoDBManager
from storage.media_storage import S3MediaStorage
from sync.bulk_import import BulkImporter, ImportDataError, load_import_data
from sync.media import MediaAcquirer
from sync.upserter import EntityUpserter
from wordpress.normalize import now_iso

logger = logging.getLogger(__name__)


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        description='Import WordPress events, venues, categories and organizers.'
    )
    parser.add_argument(
        '--imports-dir',
        default=os.environ.get('IMPORTS_DIR', 'imports'),
        help='Directory of *.json export files (default: %(default)s)'
    )
    parser.add_argument(
        '--table-name',
        default=os.environ.get('TABLE_NAME', 'events-cms'),
        help='DynamoDB table name (default: %(default)s)'
    )
    parser.add_argument(
        '--media-bucket',
        default=os.environ.get('MEDIA_BUCKET', 'events-cms-media'),
        help='S3 bucket for downloaded images (default: %(default)s)'
    )
    parser.add_argument(
        '--media-prefix',
        default=os.environ.get('MEDIA_PREFIX', 'media/'),
        help='S3 key prefix for downloaded images (default: %(default)s)'
    )
    parser.add_argument(
        '--image-timeout',
        type=int,
        default=int(os.environ.get('IMAGE_TIMEOUT_SECONDS', '30')),
        help='Image download timeout in seconds (default: %(default)s)'
    )
    parser.add_argument(
        '--log-level',
        default=os.environ.get('LOG_LEVEL', 'INFO'),
        help='Logging level (default: %(default)s)'
    )
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    setup_logging(args.log_level)
    start_time = time.time()

    try:
        import_data = load_import_data(args.imports_dir)
    except (ImportDataError, OSError, ValueError) as e:
        logger.error(f"Import failed: {e}", extra={'error_type': type(e).__name__})
        return 1

    try:
        store = DynamoDBManager(table_name=args.table_name)
        media_storage = S3MediaStorage(bucket_name=args.media_bucket, prefix=args.media_prefix)
        importer = BulkImporter(
            upserter=EntityUpserter(store, now_iso()),
            media_acquirer=MediaAcquirer(store, media_storage, timeout=args.image_timeout)
        )
        stats = importer.run(import_data)
    except Exception as e:
        logger.error(
            f"Import failed: {e}",
            extra={'error_type': type(e).__name__},
            exc_info=True
        )
        return 1

    logger.info(f"Files loaded: {', '.join(stats.files)}")
    for name in ('venues', 'categories', 'organizers', 'events'):
        counts = getattr(stats, name)
        logger.info(
            f"{name.capitalize()}: {counts.created} created, "
            f"{counts.updated} updated, {counts.skipped} skipped"
        )
    logger.info(
        f"Media: {stats.media_created} created, {stats.media_reused} reused",
        extra={'duration_seconds': round(time.time() - start_time, 2)}
    )
    return 0


if __name__ == '__main__':
    sys.exit(main())
