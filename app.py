from flask import Flask, request, jsonify, g, session
import sqlite3
from werkzeug.security import generate_password_hash, check_password_hash

import config
import db as storage
from errors import SchedulerError
from timetable_routes import timetable_bp, get_db, login_required

app = Flask(__name__)
app.config.update(
    DATABASE=config.DB_PATH,
    SECRET_KEY=config.SECRET_KEY,
    PERMANENT_SESSION_LIFETIME=config.SESSION_LIFETIME,
)
app.register_blueprint(timetable_bp)

@app.teardown_appcontext
def close_connection(exception):
    db = g.pop('_database', None)
    if db is not None:
        db.close()

def init_db():
    with app.app_context():
        storage.init_db(get_db())

# --- ERRORS ---
@app.errorhandler(SchedulerError)
def handle_scheduler_error(e):
    app.logger.info('%s: %s', type(e).__name__, e.message)
    payload = {'status': 'error', 'message': e.message}
    reason = getattr(e, 'reason', None)
    if reason is not None:
        payload['reason'] = reason.value
    return jsonify(payload), e.status_code

@app.errorhandler(sqlite3.Error)
def handle_db_error(e):
    app.logger.exception('Database error')
    return jsonify({'status': 'error', 'message': 'Database error, please try again.'}), 500

# --- AUTHENTICATION ---
def credentials():
    data = request.get_json(silent=True) or request.form
    email = (data.get('email') or '').strip().lower()
    password = data.get('password') or ''
    return email, password

@app.route('/auth/register', methods=['POST'])
def register():
    email, password = credentials()
    if not email or len(password) < 6:
        return jsonify({'status': 'error', 'message': 'Email and a password of at least 6 characters are required.'}), 400
    db = get_db()
    try:
        cur = db.execute('INSERT INTO users (email, password_hash) VALUES (?, ?)',
                         (email, generate_password_hash(password)))
        db.commit()
    except sqlite3.IntegrityError:
        return jsonify({'status': 'error', 'message': f'Error: "{email}" is already registered.'}), 400
    session.clear()
    session['user_id'] = cur.lastrowid
    session['email'] = email
    app.logger.info('Registered user %s', email)
    return jsonify({'status': 'success', 'message': 'Account created!', 'user_id': cur.lastrowid}), 201

@app.route('/auth/login', methods=['POST'])
def login():
    email, password = credentials()
    user = get_db().execute('SELECT * FROM users WHERE email = ?', (email,)).fetchone()
    if user is None or not check_password_hash(user['password_hash'], password):
        return jsonify({'status': 'error', 'message': 'Invalid email or password.'}), 401

    session.clear()
    session.permanent = bool((request.get_json(silent=True) or {}).get('remember'))
    session['user_id'] = user['id']
    session['email'] = user['email']
    return jsonify({'status': 'success', 'message': 'Logged in', 'user_id': user['id']})

@app.route('/auth/logout', methods=['POST'])
def logout():
    session.clear()
    return jsonify({'status': 'success', 'message': 'Logged out successfully'})

@app.route('/auth/password', methods=['POST'])
@login_required
def change_password():
    data = request.get_json(silent=True) or request.form
    current = data.get('current_password') or ''
    new = data.get('new_password') or ''
    if not current:
        return jsonify({'status': 'error', 'message': 'Please enter your current password'}), 400
    if len(new) < 6:
        return jsonify({'status': 'error', 'message': 'New password must be at least 6 characters'}), 400

    db = get_db()
    user = db.execute('SELECT * FROM users WHERE id = ?', (session['user_id'],)).fetchone()
    if user is None or not check_password_hash(user['password_hash'], current):
        return jsonify({'status': 'error', 'message': 'Current password is incorrect'}), 401
    db.execute('UPDATE users SET password_hash = ? WHERE id = ?',
               (generate_password_hash(new), user['id']))
    db.commit()
    app.logger.info('Password changed for user %s', user['email'])
    return jsonify({'status': 'success', 'message': 'Password updated successfully'})

@app.route('/auth/me')
@login_required
def me():
    return jsonify({'user_id': session['user_id'], 'email': session.get('email')})


if __name__ == '__main__':
    init_db()
    print('Starting timetable builder on http://127.0.0.1:5000')
    app.run(debug=True)
