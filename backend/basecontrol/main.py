from flask import Blueprint, jsonify

main = Blueprint('main', __name__)

@main.route('/')
def index():
    return jsonify({'message': 'Welcome to the Base Control match server!'})

@main.route('/health')
def health():
    from basecontrol.services.match import get_session
    session = get_session()
    return jsonify({'ok': True, 'status': session.view().get('status')})
