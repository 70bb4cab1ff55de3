from flask import Blueprint, request, jsonify, g, session, current_app, send_file
import io
import sqlite3
from functools import wraps

import db as storage
from errors import ConsistencyError, ValidationError
from excel_io import import_workbook, export_schedule_excel
from pdf_export import export_schedule_pdf
from placement import MergeProposal, ResizeProposal
from timetable import TimeTable

timetable_bp = Blueprint('timetable_bp', __name__, url_prefix='/api')

# --- DATABASE HELPERS ---
def get_db():
    db = getattr(g, '_database', None)
    if db is None:
        db = storage.connect(current_app.config['DATABASE'])
        g._database = db
    return db

# --- AUTHENTICATION ---
def login_required(f):
    @wraps(f)
    def decorated_function(*args, **kwargs):
        if 'user_id' not in session:
            return jsonify({'status': 'error', 'message': 'You need to be logged in.'}), 401
        return f(*args, **kwargs)
    return decorated_function

def load_timetable():
    return TimeTable.load(get_db(), session['user_id'])

def save_timetable(timetable):
    timetable.save(get_db(), session['user_id'])

def body():
    return request.get_json(silent=True) or {}

def ok(message, **data):
    return jsonify({'status': 'success', 'message': message, **data})

def error(message, code=400, **data):
    return jsonify({'status': 'error', 'message': message, **data}), code


# --- TIMETABLE ---
@timetable_bp.route('/timetable')
@login_required
def get_timetable():
    return jsonify(load_timetable().to_dict())

@timetable_bp.route('/reset', methods=['POST'])
@login_required
def reset():
    timetable = load_timetable()
    timetable.reset()
    save_timetable(timetable)
    session.pop('pending_merge', None)
    session.pop('pending_resize', None)
    return ok('All tiles returned to sidebar!')


# --- SIDEBAR TILES ---
@timetable_bp.route('/tiles', methods=['GET'])
@login_required
def list_tiles():
    timetable = load_timetable()
    tiles = timetable.store.filter_tiles(request.args.get('teacher'), request.args.get('section'))
    return jsonify({
        'tiles': [t.to_dict() for t in tiles],
        'teachers': timetable.store.teachers(),
        'sections': timetable.store.sections(),
    })

@timetable_bp.route('/tiles', methods=['POST'])
@login_required
def add_tile():
    data = body()
    timetable = load_timetable()
    tile = timetable.store.create_tile(
        course_name=data.get('course_name'),
        section=data.get('section'),
        teacher=data.get('teacher'),
        duration_hours=data.get('duration_hours', 1),
        duration_minutes=data.get('duration_minutes', 30),
        subject_type=data.get('subject_type', 'Lec'),
        lab_type=data.get('lab_type', 'Computer Laboratory'),
        is_asynchronous=data.get('is_asynchronous', False),
        color=data.get('color'),
    )
    save_timetable(timetable)
    return ok(f'Tile "{tile.course_name}" added successfully', tile=tile.to_dict()), 201

@timetable_bp.route('/tiles/<tile_id>', methods=['PUT'])
@login_required
def edit_tile(tile_id):
    timetable = load_timetable()
    tile = timetable.store.edit_tile(tile_id, body())
    save_timetable(timetable)
    return ok('Tile updated successfully', tile=tile.to_dict())

@timetable_bp.route('/tiles/<tile_id>', methods=['DELETE'])
@login_required
def delete_tile(tile_id):
    timetable = load_timetable()
    timetable.store.delete_tile(tile_id)
    save_timetable(timetable)
    return ok('Tile deleted')

@timetable_bp.route('/tiles', methods=['DELETE'])
@login_required
def delete_all_tiles():
    timetable = load_timetable()
    timetable.store.delete_all_tiles()
    save_timetable(timetable)
    return ok('All tiles deleted')

@timetable_bp.route('/import', methods=['POST'])
@login_required
def import_tiles():
    upload = request.files.get('file')
    if upload is None or not upload.filename:
        return error('No file uploaded')
    tiles = import_workbook(upload)
    timetable = load_timetable()
    timetable.store.add_tiles(tiles, replace=True)
    save_timetable(timetable)
    return ok(f'Loaded {len(tiles)} courses from Excel file', count=len(tiles))


# --- PLACEMENT ---
@timetable_bp.route('/place', methods=['POST'])
@login_required
def place_tile():
    data = body()
    try:
        slot_index = int(data['slot_index'])
        tile_id, room, day = data['tile_id'], data['room'], data['day']
    except (KeyError, TypeError, ValueError):
        raise ValidationError('tile_id, room, day and slot_index are required')

    timetable = load_timetable()
    result = timetable.engine.place(room, day, slot_index, tile_id)
    if not result.ok:
        return error(result.message, 409, reason=result.reason.value)
    if result.merge_required:
        session['pending_merge'] = result.proposal.to_dict()
        return jsonify({'status': 'merge_required',
                        'message': 'A tile for the same course and teacher is already here. Merge them?',
                        'proposal': result.proposal.to_dict()})
    save_timetable(timetable)
    return ok('Tile placed successfully!', tile=result.tile.to_dict())

@timetable_bp.route('/merge/confirm', methods=['POST'])
@login_required
def confirm_merge():
    pending = session.pop('pending_merge', None)
    if pending is None:
        raise ConsistencyError('There is no merge waiting for confirmation')
    timetable = load_timetable()
    merged = timetable.engine.confirm_merge(MergeProposal.from_dict(pending))
    save_timetable(timetable)
    return ok('Tiles merged successfully!', tile=merged.to_dict())

@timetable_bp.route('/merge/cancel', methods=['POST'])
@login_required
def cancel_merge():
    pending = session.pop('pending_merge', None)
    if pending is None:
        raise ConsistencyError('There is no merge waiting for confirmation')
    result = load_timetable().engine.cancel_merge(MergeProposal.from_dict(pending))
    return error('Schedule conflict - cannot place tile', 409, reason=result.reason.value)

@timetable_bp.route('/placed/<tile_id>', methods=['DELETE'])
@login_required
def remove_tile(tile_id):
    timetable = load_timetable()
    reinstated = timetable.engine.remove_tile(tile_id)
    save_timetable(timetable)
    message = ('Merged tile split back into individual sections' if len(reinstated) > 1
               else 'Tile removed from timetable')
    return ok(message, tiles=[t.to_dict() for t in reinstated])


# --- RESIZE ---
@timetable_bp.route('/placed/<tile_id>/resize', methods=['POST'])
@login_required
def propose_resize(tile_id):
    proposal = load_timetable().engine.propose_resize(tile_id, body())
    session['pending_resize'] = proposal.to_dict()
    return jsonify({'status': 'confirm_required', 'proposal': proposal.to_dict()})

@timetable_bp.route('/resize/confirm', methods=['POST'])
@login_required
def confirm_resize():
    pending = session.pop('pending_resize', None)
    if pending is None:
        raise ConsistencyError('There is no resize waiting for confirmation')
    proposal = ResizeProposal.from_dict(pending)
    timetable = load_timetable()
    tile = timetable.engine.apply_resize(proposal)
    save_timetable(timetable)
    if proposal.branch == 'shrink':
        message = f'Tile updated! Remaining {proposal.remainder.duration * 30} minutes sent to sidebar'
    elif proposal.branch == 'restore' and proposal.discard_ids:
        message = 'Tile restored to full duration! Split tiles removed from sidebar'
    else:
        message = 'Tile updated successfully'
    return ok(message, tile=tile.to_dict())

@timetable_bp.route('/resize/cancel', methods=['POST'])
@login_required
def cancel_resize():
    session.pop('pending_resize', None)
    return ok('Resize cancelled')


# --- ROOMS ---
@timetable_bp.route('/rooms', methods=['POST'])
@login_required
def add_room():
    timetable = load_timetable()
    name = timetable.rooms.add_room(body().get('name'))
    save_timetable(timetable)
    return ok(f'Room "{name}" added', rooms=timetable.rooms.rooms), 201

@timetable_bp.route('/rooms/<name>', methods=['PUT'])
@login_required
def rename_room(name):
    timetable = load_timetable()
    new_name = timetable.rooms.rename_room(name, body().get('name'))
    save_timetable(timetable)
    return ok(f'Room renamed to "{new_name}"', rooms=timetable.rooms.rooms)

@timetable_bp.route('/rooms/<name>', methods=['DELETE'])
@login_required
def delete_room(name):
    timetable = load_timetable()
    timetable.rooms.delete_room(name)
    save_timetable(timetable)
    return ok(f'Room "{name}" deleted', rooms=timetable.rooms.rooms)


# --- SAVED SCHEDULES ---
@timetable_bp.route('/schedules/save', methods=['POST'])
@login_required
def save_schedules():
    saved = load_timetable().save_schedules(get_db(), session['user_id'])
    counts = {kind: sum(1 for s in saved if s.type.value == kind) for kind in ('room', 'teacher', 'section')}
    return ok(f"Timetable saved! {counts['room']} rooms, {counts['teacher']} teachers, {counts['section']} sections",
              counts=counts)

@timetable_bp.route('/schedules')
@login_required
def list_schedules():
    schedules = storage.load_saved_schedules(get_db(), session['user_id'])
    kind = request.args.get('type')
    return jsonify({'schedules': [s.to_dict() for s in schedules if not kind or s.type.value == kind]})

@timetable_bp.route('/schedules/<schedule_id>', methods=['DELETE'])
@login_required
def delete_schedule(schedule_id):
    try:
        deleted = storage.delete_saved_schedule(get_db(), session['user_id'], schedule_id)
    except sqlite3.Error as e:
        return error(str(e), 500)
    if not deleted:
        return error('Schedule not found', 404)
    return ok('Schedule deleted')

def find_schedule(schedule_id):
    schedules = storage.load_saved_schedules(get_db(), session['user_id'])
    schedule = next((s for s in schedules if s.id == schedule_id), None)
    if schedule is None:
        raise ConsistencyError('Schedule not found')
    return schedule

@timetable_bp.route('/schedules/<schedule_id>/export/excel')
@login_required
def export_excel(schedule_id):
    schedule = find_schedule(schedule_id)
    return send_file(export_schedule_excel(schedule),
                     mimetype='application/vnd.openxmlformats-officedocument.spreadsheetml.sheet',
                     as_attachment=True, download_name=f'{schedule.name}.xlsx')

@timetable_bp.route('/schedules/<schedule_id>/export/pdf')
@login_required
def export_pdf(schedule_id):
    schedule = find_schedule(schedule_id)
    return send_file(io.BytesIO(export_schedule_pdf(schedule)), mimetype='application/pdf',
                     as_attachment=True, download_name=f'{schedule.name}.pdf')
