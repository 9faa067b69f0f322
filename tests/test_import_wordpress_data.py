"""Tests for the bulk import command line entry point."""
import json

from import_wordpress_data import main, parse_args


def test_parse_args_defaults_from_environment(monkeypatch):
    monkeypatch.setenv('IMPORTS_DIR', '/data/wp')
    monkeypatch.setenv('TABLE_NAME', 'cms-prod')
    monkeypatch.setenv('IMAGE_TIMEOUT_SECONDS', '12')

    args = parse_args([])

    assert args.imports_dir == '/data/wp'
    assert args.table_name == 'cms-prod'
    assert args.image_timeout == 12
    assert args.media_prefix == 'media/'


def test_flags_override_environment(monkeypatch):
    monkeypatch.setenv('TABLE_NAME', 'cms-prod')

    args = parse_args(['--table-name', 'cms-dev', '--log-level', 'DEBUG'])

    assert args.table_name == 'cms-dev'
    assert args.log_level == 'DEBUG'


def test_main_imports_directory(tmp_path, store, s3_client):
    export = {
        'venues': [{'id': 42, 'venue': 'The Carleton'}],
        'categories': [{'id': 5, 'name': 'Music'}],
        'events': [
            {'id': 1, 'title': 'Jazz Night', 'start_date': '2026-03-15 19:00:00',
             'venue': {'id': 42}, 'categories': [{'id': 5}]},
            {'id': 2, 'title': 'No date'},
        ],
    }
    (tmp_path / 'events.json').write_text(json.dumps(export), encoding='utf-8')

    exit_code = main([
        '--imports-dir', str(tmp_path),
        '--table-name', 'test-events-cms',
        '--media-bucket', 'test-events-media',
    ])

    assert exit_code == 0
    events = store.find('events')['docs']
    assert [event['title'] for event in events] == ['Jazz Night']
    assert events[0]['venue'] == store.find('venues')['docs'][0]['id']


def test_main_missing_directory(tmp_path):
    assert main(['--imports-dir', str(tmp_path / 'missing')]) == 1


def test_main_invalid_json(tmp_path):
    (tmp_path / 'broken.json').write_text('{"events": [', encoding='utf-8')

    assert main(['--imports-dir', str(tmp_path)]) == 1
