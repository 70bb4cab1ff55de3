import io

import pandas as pd


def create_tile(client, **data):
    payload = {'course_name': 'Data Structures', 'section': 'CS 101', 'teacher': 'J. Reyes',
               'duration_hours': 1, 'duration_minutes': 0}
    payload.update(data)
    response = client.post('/api/tiles', json=payload)
    assert response.status_code == 201
    return response.get_json()['tile']


def place(client, tile_id, room='101', day='Monday', slot_index=0):
    return client.post('/api/place', json={'tile_id': tile_id, 'room': room, 'day': day,
                                           'slot_index': slot_index})


# --- AUTH ---
def test_api_requires_login(flask_app):
    with flask_app.test_client() as anonymous:
        response = anonymous.get('/api/timetable')
        assert response.status_code == 401
        assert response.get_json()['status'] == 'error'


def test_register_login_logout(flask_app, client):
    assert client.post('/auth/register', json={'email': 'x@example.com', 'password': '123'}).status_code == 400
    assert client.post('/auth/register', json={'email': 'teacher@example.com',
                                               'password': 'secret123'}).status_code == 400

    client.post('/auth/logout')
    assert client.get('/auth/me').status_code == 401
    assert client.post('/auth/login', json={'email': 'teacher@example.com', 'password': 'nope'}).status_code == 401

    response = client.post('/auth/login', json={'email': 'Teacher@Example.com', 'password': 'secret123',
                                                'remember': True})
    assert response.status_code == 200
    assert client.get('/auth/me').get_json()['email'] == 'teacher@example.com'


def test_change_password(flask_app, client):
    response = client.post('/auth/password', json={'current_password': 'wrong1', 'new_password': 'newsecret'})
    assert response.status_code == 401
    response = client.post('/auth/password', json={'current_password': 'secret123', 'new_password': '123'})
    assert response.status_code == 400
    response = client.post('/auth/password', json={'current_password': 'secret123', 'new_password': 'newsecret'})
    assert response.get_json()['message'] == 'Password updated successfully'

    client.post('/auth/logout')
    assert client.post('/auth/password', json={'current_password': 'newsecret',
                                               'new_password': 'another1'}).status_code == 401
    assert client.post('/auth/login', json={'email': 'teacher@example.com',
                                            'password': 'secret123'}).status_code == 401
    assert client.post('/auth/login', json={'email': 'teacher@example.com',
                                            'password': 'newsecret'}).status_code == 200


def test_users_do_not_share_timetables(flask_app, client):
    create_tile(client)
    with flask_app.test_client() as other:
        other.post('/auth/register', json={'email': 'other@example.com', 'password': 'secret123'})
        assert other.get('/api/timetable').get_json()['available'] == []


# --- TIMETABLE / TILES ---
def test_new_timetable(client):
    data = client.get('/api/timetable').get_json()
    assert data['available'] == [] and data['placed'] == []
    assert 'CL1' in data['rooms']
    assert data['max_slots'] == 28
    assert len(data['time_labels']) == 25


def test_tile_crud_and_filters(client):
    a = create_tile(client, duration_hours=1, duration_minutes=30)
    assert a['duration'] == 3
    assert a['color'] == '#10b981'
    create_tile(client, course_name='Ethics', section='IT 101', teacher='M. Santos')

    data = client.get('/api/tiles', query_string={'teacher': 'M. Santos'}).get_json()
    assert [t['course_name'] for t in data['tiles']] == ['Ethics']
    assert data['teachers'] == ['J. Reyes', 'M. Santos']

    response = client.put(f"/api/tiles/{a['id']}", json={'end_time': '10:00', 'is_asynchronous': True})
    assert response.get_json()['tile']['duration'] == 4
    assert response.get_json()['tile']['color'] == '#f59e0b'

    assert client.delete(f"/api/tiles/{a['id']}").status_code == 200
    assert client.delete(f"/api/tiles/{a['id']}").status_code == 400
    client.delete('/api/tiles')
    assert client.get('/api/timetable').get_json()['available'] == []


def test_tile_validation_errors(client):
    response = client.post('/api/tiles', json={'course_name': ' ', 'duration_hours': 1})
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Course name is required'
    response = client.post('/api/tiles', json={'course_name': 'A', 'duration_hours': 0, 'duration_minutes': 0})
    assert response.status_code == 400


def test_import_excel(client):
    create_tile(client, course_name='Old')
    buffer = io.BytesIO()
    pd.DataFrame([
        ['Timetable', None],
        ['Time', 'Monday'],
        ['8:00', '8:00 - 9:30 "CYBER SECURITY" CS/ACT 201 J.DE GUZMAN'],
    ]).to_excel(buffer, header=False, index=False, engine='openpyxl')
    buffer.seek(0)

    response = client.post('/api/import', data={'file': (buffer, 'timetable.xlsx')},
                           content_type='multipart/form-data')
    assert response.get_json()['count'] == 1
    available = client.get('/api/timetable').get_json()['available']
    assert [t['course_name'] for t in available] == ['CYBER SECURITY']

    assert client.post('/api/import', data={}, content_type='multipart/form-data').status_code == 400


# --- PLACEMENT ---
def test_place_and_conflict(client):
    tile = create_tile(client)
    other = create_tile(client, course_name='Ethics', section='IT 101', teacher='M. Santos')

    response = place(client, tile['id'])
    assert response.status_code == 200
    assert response.get_json()['tile']['room'] == '101'

    response = place(client, other['id'], slot_index=1)
    assert response.status_code == 409
    assert response.get_json()['reason'] == 'slot_occupied'

    response = place(client, other['id'], room='CL1')
    assert response.get_json()['reason'] == 'room_type_mismatch'

    data = client.get('/api/timetable').get_json()
    assert [t['id'] for t in data['placed']] == [tile['id']]
    assert [t['id'] for t in data['available']] == [other['id']]


def test_place_requires_fields(client):
    response = client.post('/api/place', json={'tile_id': 'x', 'room': '101'})
    assert response.status_code == 400


def test_merge_confirm_and_remove(client):
    a = create_tile(client, section='CS 101')
    b = create_tile(client, section='ACT 101')
    place(client, a['id'])

    response = place(client, b['id'])
    assert response.get_json()['status'] == 'merge_required'
    assert response.get_json()['proposal']['merged_section'] == 'CS 101/ACT 101'

    merged = client.post('/api/merge/confirm').get_json()['tile']
    assert merged['section'] == 'CS 101/ACT 101'
    assert client.post('/api/merge/confirm').status_code == 400

    response = client.delete(f"/api/placed/{merged['id']}")
    assert [t['section'] for t in response.get_json()['tiles']] == ['CS 101', 'ACT 101']
    assert client.get('/api/timetable').get_json()['placed'] == []


def test_merge_cancel(client):
    a = create_tile(client, section='CS 101')
    b = create_tile(client, section='ACT 101')
    place(client, a['id'])
    place(client, b['id'])

    response = client.post('/api/merge/cancel')
    assert response.status_code == 409
    assert response.get_json()['reason'] == 'slot_occupied'
    data = client.get('/api/timetable').get_json()
    assert data['placed'][0]['section'] == 'CS 101'
    assert [t['id'] for t in data['available']] == [b['id']]


def test_merge_confirm_after_tile_placed_elsewhere(client):
    a = create_tile(client, section='CS 101')
    b = create_tile(client, section='ACT 101')
    place(client, a['id'])
    assert place(client, b['id']).get_json()['status'] == 'merge_required'

    assert place(client, b['id'], room='102', day='Friday', slot_index=10).status_code == 200
    assert client.post('/api/merge/confirm').status_code == 400
    placed = {t['id']: (t['room'], t['section']) for t in client.get('/api/timetable').get_json()['placed']}
    assert placed == {a['id']: ('101', 'CS 101'), b['id']: ('102', 'ACT 101')}


# --- RESIZE ---
def test_resize_shrink_then_restore(client):
    tile = create_tile(client, duration_hours=2)
    place(client, tile['id'])

    response = client.post(f"/api/placed/{tile['id']}/resize", json={'start_time': '08:00', 'end_time': '09:00'})
    assert response.get_json()['status'] == 'confirm_required'
    assert response.get_json()['proposal']['branch'] == 'shrink'

    response = client.post('/api/resize/confirm')
    assert response.get_json()['message'] == 'Tile updated! Remaining 60 minutes sent to sidebar'
    assert response.get_json()['tile']['duration'] == 2
    [remainder] = client.get('/api/timetable').get_json()['available']
    assert remainder['split_from_id'] == tile['id']
    assert remainder['start_time'] == '09:00'

    client.post(f"/api/placed/{tile['id']}/resize", json={'start_time': '08:00', 'end_time': '10:00'})
    response = client.post('/api/resize/confirm')
    assert response.get_json()['message'] == 'Tile restored to full duration! Split tiles removed from sidebar'
    assert client.get('/api/timetable').get_json()['available'] == []


def test_resize_rejections(client):
    a = create_tile(client)
    b = create_tile(client, course_name='Ethics', section='IT 101', teacher='M. Santos')
    place(client, a['id'])
    place(client, b['id'], slot_index=2)

    response = client.post(f"/api/placed/{a['id']}/resize", json={'start_time': '08:00', 'end_time': '10:00'})
    assert response.status_code == 409
    assert response.get_json()['reason'] == 'slot_occupied'

    response = client.post(f"/api/placed/{a['id']}/resize", json={'start_time': '09:00', 'end_time': '08:00'})
    assert response.status_code == 400

    assert client.post('/api/resize/cancel').status_code == 200
    assert client.post('/api/resize/confirm').status_code == 400


def test_resize_confirm_after_grid_changed(client):
    a = create_tile(client)
    place(client, a['id'])
    client.post(f"/api/placed/{a['id']}/resize", json={'start_time': '08:00', 'end_time': '10:00'})

    b = create_tile(client, course_name='Ethics', section='IT 101', teacher='M. Santos')
    assert place(client, b['id'], slot_index=2).status_code == 200
    response = client.post('/api/resize/confirm')
    assert response.status_code == 409
    assert response.get_json()['reason'] == 'slot_occupied'
    spans = {t['id']: (t['slot_index'], t['duration']) for t in client.get('/api/timetable').get_json()['placed']}
    assert spans == {a['id']: (0, 2), b['id']: (2, 2)}


# --- ROOMS ---
def test_room_management(client):
    response = client.post('/api/rooms', json={'name': 'KL1'})
    assert response.status_code == 201
    assert response.get_json()['rooms'][-1] == 'KL1'
    response = client.post('/api/rooms', json={'name': 'KL1'})
    assert response.get_json()['message'] == 'Room already exists'

    tile = create_tile(client)
    place(client, tile['id'], room='103')
    response = client.delete('/api/rooms/103')
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Cannot delete room with scheduled courses'

    response = client.put('/api/rooms/103', json={'name': 'Room 103'})
    assert 'Room 103' in response.get_json()['rooms']
    assert client.get('/api/timetable').get_json()['placed'][0]['room'] == 'Room 103'

    assert client.delete('/api/rooms/KL1').status_code == 200


def test_reset(client):
    a = create_tile(client)
    place(client, a['id'])
    client.post('/api/rooms', json={'name': '301'})

    assert client.post('/api/reset').status_code == 200
    data = client.get('/api/timetable').get_json()
    assert data['placed'] == []
    assert [t['id'] for t in data['available']] == [a['id']]
    assert '301' not in data['rooms']


# --- SAVED SCHEDULES ---
def test_save_requires_placed_tiles(client):
    response = client.post('/api/schedules/save')
    assert response.status_code == 400
    assert response.get_json()['message'] == 'Please add some courses to the timetable first'


def test_saved_schedules(client):
    a = create_tile(client, section='CS 101/ACT 101')
    place(client, a['id'])

    response = client.post('/api/schedules/save')
    assert response.get_json()['counts'] == {'room': 11, 'teacher': 1, 'section': 2}

    sections = client.get('/api/schedules?type=section').get_json()['schedules']
    assert sorted(s['name'] for s in sections) == ['ACT 101', 'CS 101']
    schedule_id = sections[0]['id']

    response = client.get(f'/api/schedules/{schedule_id}/export/excel')
    assert response.status_code == 200
    assert response.data[:2] == b'PK'
    response = client.get(f'/api/schedules/{schedule_id}/export/pdf')
    assert response.mimetype == 'application/pdf'
    assert response.data[:4] == b'%PDF'

    assert client.delete(f'/api/schedules/{schedule_id}').status_code == 200
    assert client.delete(f'/api/schedules/{schedule_id}').status_code == 404
    assert client.get(f'/api/schedules/{schedule_id}/export/pdf').status_code == 400
