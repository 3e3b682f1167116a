from flask import Blueprint, abort, current_app, g, redirect, render_template, request, url_for
import io

from .bulk_import import import_athletes, import_people, read_rows
from .derivation import MAX_RELAY_ATHLETES
from .listing import apply_listing, parse_sort, request_sort
from .models import (
    ATHLETES,
    COLLECTIONS,
    DERIVED_FIELDS,
    EVENTS,
    LIST_REFERENCES,
    MEETS,
    PEOPLE,
    REFERENCES,
    RELAY_RESULTS,
    SCREENS,
    field_names,
    input_type,
    writable,
)
from .stores import Stores, build_stores


bp = Blueprint('main', __name__)

SCREEN_TITLES = {
    'people': 'People',
    'teams': 'Teams',
    'seasons': 'Seasons',
    'athletes': 'Athletes',
    'contacts': 'Contacts',
    'events': 'Events',
    'meets': 'Meets',
    'ind-results': 'Individual Results',
    'relay-results': 'Relay Results',
}

UPLOAD_SCREENS = {PEOPLE: 'main.upload_people', ATHLETES: 'main.upload_athletes'}


def _stores() -> Stores:
    """Stores for the current request, built on first use."""
    stores = g.get('roster_stores')
    if stores is None:
        stores = build_stores()
        g.roster_stores = stores
    return stores


def _api_collection(collection: str) -> str:
    if collection not in COLLECTIONS:
        abort(404)
    return collection


def _display_value(store, collection: str, column: str, record: dict):
    value = record.get(column)
    target = REFERENCES.get(collection, {}).get(column)
    if target:
        return store.display_name(target, value) if value else ''
    if collection == RELAY_RESULTS and column == 'athletes':
        return ', '.join(store.leg_names(record))
    if collection == MEETS and column == 'eventOrder':
        return ', '.join(store.display_name(EVENTS, e) for e in (value or []))
    if value is None:
        return ''
    return value


def _options(store, target: str):
    return [(doc_id, store.display_name(target, doc_id)) for doc_id in store.helpers.get(target, {})]


def _form_fields(store, collection: str):
    """Inputs for the create/edit dialog; derived fields are left out."""
    derived = DERIVED_FIELDS.get(collection, ())
    fields = []
    for name in field_names(collection):
        if name in derived:
            continue
        field = {'name': name, 'input': input_type(collection, name), 'options': []}
        target = REFERENCES.get(collection, {}).get(name)
        list_target = LIST_REFERENCES.get(collection, {}).get(name)
        if target:
            field.update(input='select', options=_options(store, target))
        elif list_target and collection == RELAY_RESULTS:
            field.update(input='slots', slots=MAX_RELAY_ATHLETES, options=_options(store, list_target))
        elif list_target:
            field.update(input='multiselect', options=_options(store, list_target))
        fields.append(field)
    return fields


@bp.route('/')
def index():
    return redirect(url_for('main.screen', screen='people'))


@bp.route('/<screen>')
def screen(screen):
    collection = SCREENS.get(screen)
    if collection is None:
        abort(404)
    store = _stores().mounted(collection)
    config = parse_sort(request.args.get('sort'), request.args.get('direction'))
    filter_text = request.args.get('filter', '')
    records = apply_listing(store.records, config, filter_text)
    columns = field_names(collection)
    rows = [
        {'id': r.get('id'), 'cells': [_display_value(store, collection, c, r) for c in columns], 'record': r}
        for r in records
    ]
    title = SCREEN_TITLES[screen]
    return render_template(
        'listing.html',
        title=title,
        breadcrumbs=[(title, None)],
        screen=screen,
        collection=collection,
        screens=SCREEN_TITLES,
        columns=columns,
        rows=rows,
        sort=config,
        next_sort={c: request_sort(config, c) for c in columns},
        filter_text=filter_text,
        error=store.error,
        upload_endpoint=UPLOAD_SCREENS.get(collection),
        form_fields=_form_fields(store, collection),
        defaults=writable(collection, {}, with_defaults=True),
    )


#<getdata>
@bp.route('/api/<collection>', methods=['GET'])
def list_records(collection):
    store = _stores().mounted(_api_collection(collection))
    if store.error:
        return {'error': store.error}, 400
    return {'records': store.records}


@bp.route('/api/<collection>', methods=['POST'])
def create_record(collection):
    payload = request.get_json() or {}
    store = _stores().mounted(_api_collection(collection))
    doc_id = store.create(payload)
    if doc_id is None:
        return {'error': store.error}, 400
    return {'id': doc_id, 'records': store.records}, 201


@bp.route('/api/<collection>/<doc_id>', methods=['POST'])
def update_record(collection, doc_id):
    payload = request.get_json() or {}
    store = _stores().mounted(_api_collection(collection))
    if not store.update(doc_id, payload):
        return {'error': store.error}, 400
    return {'id': doc_id, 'records': store.records}


@bp.route('/api/<collection>/<doc_id>', methods=['DELETE'])
def delete_record(collection, doc_id):
    store = _stores().mounted(_api_collection(collection))
    if not store.delete(doc_id):
        return {'error': store.error}, 400
    return {'status': 'ok', 'records': store.records}
#</getdata>


def _uploaded_rows():
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return None, ({'error': 'No file uploaded.'}, 400)
    try:
        rows = read_rows(io.BytesIO(upload.read()), upload.filename)
    except Exception as e:  # pylint: disable=broad-except
        current_app.logger.warning("upload parse failed file=%s: %s", upload.filename, e)
        return None, ({'error': f"Error processing file: {e}"}, 400)
    return rows, None


@bp.route('/api/athletes/upload', methods=['POST'])
def upload_athletes():
    rows, failure = _uploaded_rows()
    if failure:
        return failure
    store = _stores().mounted(ATHLETES)
    report = import_athletes(store, rows)
    current_app.logger.info("athlete upload rows=%d created=%d errors=%d", len(rows), report.created, len(report.errors))
    return report.to_dict(), (400 if report.failed else 200)


@bp.route('/api/people/upload', methods=['POST'])
def upload_people():
    rows, failure = _uploaded_rows()
    if failure:
        return failure
    store = _stores().mounted(PEOPLE)
    report = import_people(store, rows)
    current_app.logger.info("people upload rows=%d created=%d skipped=%d", len(rows), report.created, report.skipped)
    return report.to_dict(), (400 if report.failed else 200)


@bp.route('/health/db')
def health_db():
    """Database connectivity health check.

    Attempts to connect using the ``DATABASE_URL`` environment variable and
    returns basic server info plus document counts per collection. Always
    returns HTTP 200 with a JSON body describing connection status.
    """
    import os
    url = os.environ.get('DATABASE_URL')
    if not url:
        return {
            'connected': False,
            'status': 'no_database_url',
            'message': 'DATABASE_URL is not set.'
        }
    try:
        import psycopg2  # type: ignore
        with psycopg2.connect(url, connect_timeout=5) as conn:
            with conn.cursor() as cur:
                cur.execute('SELECT current_user, current_database(), version()')
                user, db, ver = cur.fetchone()
                cur.execute('SELECT collection, count(*) FROM documents GROUP BY collection')
                counts = {name: int(n) for name, n in cur.fetchall()}
            return {
                'connected': True,
                'status': 'ok',
                'user': user,
                'database': db,
                'server_version': (ver or '').split('\n')[0],
                'documents': {c: counts.get(c, 0) for c in COLLECTIONS},
            }
    except Exception as e:  # pylint: disable=broad-except
        return {
            'connected': False,
            'status': 'error',
            'error': str(e),
        }
