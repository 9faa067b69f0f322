"""Shared fixtures: mocked AWS resources and WordPress payloads."""
import boto3
import pytest
from moto import mock_aws

from storage.dynamodb_manager import DynamoDBManager, create_table
from storage.media_storage import S3MediaStorage

TABLE_NAME = 'test-events-cms'
MEDIA_BUCKET = 'test-events-media'
NOW = '2026-03-01T00:00:00.000Z'


@pytest.fixture(autouse=True)
def aws_credentials(monkeypatch):
    """Fake credentials so boto3 never reaches a real account."""
    monkeypatch.setenv('AWS_ACCESS_KEY_ID', 'testing')
    monkeypatch.setenv('AWS_SECRET_ACCESS_KEY', 'testing')
    monkeypatch.setenv('AWS_SECURITY_TOKEN', 'testing')
    monkeypatch.setenv('AWS_SESSION_TOKEN', 'testing')
    monkeypatch.setenv('AWS_DEFAULT_REGION', 'us-east-1')


@pytest.fixture
def aws():
    with mock_aws():
        yield


@pytest.fixture
def store(aws):
    """Create a mock DynamoDB table and a manager for it."""
    create_table(TABLE_NAME)
    return DynamoDBManager(TABLE_NAME)


@pytest.fixture
def s3_client(aws):
    client = boto3.client('s3', region_name='us-east-1')
    client.create_bucket(Bucket=MEDIA_BUCKET)
    return client


@pytest.fixture
def media_storage(s3_client):
    return S3MediaStorage(MEDIA_BUCKET, s3_client=s3_client)


@pytest.fixture
def wp_event_payload():
    """Webhook-shaped WordPress event."""
    return {
        'id': 123,
        'title': 'Jazz Night',
        'slug': 'jazz-night',
        'status': 'publish',
        'start_date': '2026-03-15 19:00:00',
        'end_date': '2026-03-15 22:00:00',
        'timezone': 'America/Halifax',
        'venue': {
            'id': 42,
            'venue': 'The Carleton',
            'slug': 'the-carleton',
            'address': '1685 Argyle St',
            'city': 'Halifax',
            'province': 'Nova Scotia',
            'geo_lat': 44.6454,
            'geo_lng': -63.5737,
        },
        'categories': [{'id': 5, 'name': 'Music', 'slug': 'music'}],
    }
