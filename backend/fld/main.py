from flask import Blueprint, request, jsonify, current_app
from flask_login import login_user, logout_user, login_required, current_user
from fld import db
from fld.models import GameMaster

main = Blueprint('main', __name__)

@main.route('/register', methods=['POST'])
def register():
    data = request.get_json(silent=True) or {}
    username = (data.get('username') or '').strip()
    password = data.get('password') or ''
    if not username or not password:
        return jsonify({'error': 'Missing username or password'}), 400

    if GameMaster.query.filter_by(username=username).first():
        return jsonify({'error': 'Username already exists'}), 400

    master = GameMaster(username=username)
    master.set_password(password)
    db.session.add(master)
    db.session.commit()
    login_user(master, remember=True)
    current_app.logger.info(f"[register] master={master.id} username={username!r}")
    return jsonify(master.to_dict()), 201

@main.route('/login', methods=['POST'])
def login():
    data = request.get_json(silent=True) or {}
    master = GameMaster.query.filter_by(username=data.get('username')).first()
    if master and master.check_password(data.get('password') or ''):
        login_user(master, remember=True)
        return jsonify(master.to_dict())
    return jsonify({'error': 'Invalid username or password'}), 401

@main.route('/me', methods=['GET'])
@login_required
def me():
    return jsonify(current_user.to_dict())

@main.route('/logout', methods=['POST'])
@login_required
def logout():
    logout_user()
    return jsonify({'message': 'Logged out successfully.'})
