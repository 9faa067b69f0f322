"""Unit tests for the DynamoDB document store."""
import pytest

from storage.dynamodb_manager import DocumentNotFoundError, DuplicateKeyError


def venue_data(external_id='42', name='The Carleton'):
    return {
        'name': name,
        'slug': f'venue-{external_id}',
        'coordinates': [-63.5737, 44.6454],
        'address': {'city': 'Halifax', 'zip': None},
        'sync': {'externalId': external_id, 'lastSyncedAt': '2026-03-01T00:00:00.000Z'},
    }


class TestCreate:
    """Test cases for DynamoDBManager.create."""

    def test_allocates_sequential_ids_per_collection(self, store):
        first = store.create('venues', venue_data('1'))
        second = store.create('venues', venue_data('2'))
        other = store.create('categories', {'name': 'Music', 'sync': {'externalId': '5'}})

        assert first['id'] == 1
        assert second['id'] == 2
        assert other['id'] == 1

    def test_round_trips_fields(self, store):
        created = store.create('venues', venue_data())

        doc = store.get('venues', created['id'])
        assert doc['name'] == 'The Carleton'
        assert doc['coordinates'] == [-63.5737, 44.6454]
        assert doc['address'] == {'city': 'Halifax', 'zip': None}
        assert doc['sync']['externalId'] == '42'
        assert doc['createdAt'] == doc['updatedAt']

    def test_duplicate_external_id_rejected(self, store):
        store.create('venues', venue_data('42'))

        with pytest.raises(DuplicateKeyError) as excinfo:
            store.create('venues', venue_data('42', name='Another'))

        assert excinfo.value.field == 'sync.externalId'
        assert excinfo.value.value == '42'
        assert len(store.find('venues')['docs']) == 1

    def test_same_external_id_allowed_across_collections(self, store):
        store.create('venues', venue_data('42'))
        store.create('events', {'title': 'Gig', 'sync': {'externalId': '42'}})

        assert len(store.find('events', where={'sync.externalId': '42'})['docs']) == 1

    def test_documents_without_external_id_are_not_unique(self, store):
        store.create('venues', {'name': 'Manual A', 'sync': {}})
        store.create('venues', {'name': 'Manual B'})

        assert len(store.find('venues')['docs']) == 2

    def test_duplicate_media_credit_rejected(self, store):
        store.create('media', {'credit': 'https://example.com/a.jpg'})

        with pytest.raises(DuplicateKeyError):
            store.create('media', {'credit': 'https://example.com/a.jpg'})


class TestFind:
    """Test cases for DynamoDBManager.find."""

    def test_find_by_external_id(self, store):
        store.create('venues', venue_data('41'))
        created = store.create('venues', venue_data('42'))

        result = store.find('venues', where={'sync.externalId': '42'}, limit=1, depth=0)

        assert [doc['id'] for doc in result['docs']] == [created['id']]

    def test_find_missing(self, store):
        assert store.find('venues', where={'sync.externalId': '404'}) == {'docs': []}

    def test_find_by_id(self, store):
        created = store.create('venues', venue_data())

        assert store.find('venues', where={'id': created['id']})['docs'][0]['name'] == 'The Carleton'

    def test_scan_on_nested_field(self, store):
        store.create('events', {'title': 'A', 'sync': {'source': 'wordpress', 'externalId': '1'}})
        store.create('events', {'title': 'B', 'sync': {'source': 'manual'}})
        store.create('events', {'title': 'C', 'sync': {'source': 'wordpress', 'externalId': '3'}})

        docs = store.find('events', where={'sync.source': 'wordpress'})['docs']

        assert [doc['title'] for doc in docs] == ['A', 'C']

    def test_scan_respects_limit(self, store):
        for index in range(3):
            store.create('categories', {'name': f'Cat {index}', 'status': 'x'})

        assert len(store.find('categories', where={'status': 'x'}, limit=2)['docs']) == 2

    def test_scan_ignores_other_collections(self, store):
        store.create('venues', venue_data())
        store.create('categories', {'name': 'Music'})

        docs = store.find('categories')['docs']

        assert [doc['name'] for doc in docs] == ['Music']


class TestUpdate:
    """Test cases for DynamoDBManager.update."""

    def test_merges_top_level_fields(self, store):
        created = store.create('venues', venue_data())

        updated = store.update('venues', created['id'], {'phone': '902-555-0100'})

        assert updated['name'] == 'The Carleton'
        assert updated['phone'] == '902-555-0100'
        doc = store.get('venues', created['id'])
        assert doc['phone'] == '902-555-0100'
        assert doc['coordinates'] == [-63.5737, 44.6454]

    def test_keeps_external_id_marker(self, store):
        created = store.create('venues', venue_data('42'))

        store.update('venues', created['id'], venue_data('42', name='Renamed'))

        docs = store.find('venues', where={'sync.externalId': '42'})['docs']
        assert docs[0]['name'] == 'Renamed'

    def test_moves_marker_when_unique_value_changes(self, store):
        created = store.create('venues', venue_data('42'))

        store.update('venues', created['id'], {'sync': {'externalId': '43'}})

        assert store.find('venues', where={'sync.externalId': '42'})['docs'] == []
        assert store.find('venues', where={'sync.externalId': '43'})['docs'][0]['id'] == created['id']
        # Old value is free again
        store.create('venues', venue_data('42'))

    def test_rejects_taken_unique_value(self, store):
        store.create('venues', venue_data('42'))
        other = store.create('venues', venue_data('43'))

        with pytest.raises(DuplicateKeyError):
            store.update('venues', other['id'], {'sync': {'externalId': '42'}})

        assert store.get('venues', other['id'])['sync']['externalId'] == '43'

    def test_missing_document(self, store):
        with pytest.raises(DocumentNotFoundError):
            store.update('venues', 999, {'name': 'Nope'})

    def test_set_field_to_none(self, store):
        created = store.create('categories', {'name': 'Jazz', 'parent': 3})

        store.update('categories', created['id'], {'parent': None})

        assert store.get('categories', created['id'])['parent'] is None
