from flask import request, jsonify
from flask_login import login_required, current_user
from sqlalchemy import or_
from . import social_bp
from models import db, User, Friendship
from utils import get_payload, parse_int, friendship_entry, find_friendship, get_user

SEARCH_LIMIT = 10

@social_bp.route('/friends', methods=['GET'])
@login_required
def friends_list():
    user_id = request.args.get('userId')
    if not user_id:
        return 'Missing userId', 400
    if parse_int(user_id) != current_user.id:
        return 'Forbidden', 403

    sent = Friendship.query.filter_by(requester_id=current_user.id).all()
    received = Friendship.query.filter_by(addressee_id=current_user.id).all()

    friends = [friendship_entry(f, f.addressee, True) for f in sent]
    friends += [friendship_entry(f, f.requester, False) for f in received]
    return jsonify(friends)

@social_bp.route('/friends/request', methods=['POST'])
@login_required
def send_friend_request():
    data = get_payload()
    requester_id = parse_int(data.get('requesterId'))
    addressee_id = parse_int(data.get('addresseeId'))

    if not requester_id or not addressee_id:
        return 'Missing required fields', 400
    if requester_id != current_user.id:
        return 'Forbidden', 403
    if addressee_id == requester_id:
        return 'You cannot befriend yourself', 400

    addressee = get_user(addressee_id)
    if not addressee:
        return 'User not found', 404

    if find_friendship(requester_id, addressee_id):
        return 'Friendship already exists', 409

    friendship = Friendship(requester_id=requester_id, addressee_id=addressee_id, status='PENDING')
    db.session.add(friendship)
    db.session.commit()
    return jsonify(friendship_entry(friendship, addressee, True))

@social_bp.route('/friends/<int:friendship_id>/accept', methods=['POST'])
@login_required
def accept_friend_request(friendship_id):
    data = get_payload()
    user_id = data.get('userId')
    if not user_id:
        return 'Missing userId', 400
    if parse_int(user_id) != current_user.id:
        return 'Forbidden', 403

    friendship = db.session.get(Friendship, friendship_id)
    if not friendship:
        return 'Friendship not found', 404
    if friendship.addressee_id != current_user.id:
        return 'Only the addressee can accept a friend request', 403
    if friendship.status != 'PENDING':
        return f'Friendship is already {friendship.status.lower()}', 400

    friendship.status = 'ACCEPTED'
    db.session.commit()
    return jsonify(friendship_entry(friendship, friendship.requester, False))

@social_bp.route('/friends/<int:friendship_id>/reject', methods=['POST'])
@login_required
def reject_friend_request(friendship_id):
    friendship = db.session.get(Friendship, friendship_id)
    if not friendship:
        return jsonify({'error': 'Friend request not found'}), 404
    if friendship.addressee_id != current_user.id:
        return jsonify({'error': 'Not authorized to reject this request'}), 403

    db.session.delete(friendship)
    db.session.commit()
    return jsonify({'message': 'Friend request rejected'})

@social_bp.route('/friends/<int:friendship_id>', methods=['DELETE'])
@login_required
def remove_friend(friendship_id):
    friendship = db.session.get(Friendship, friendship_id)
    if not friendship:
        return jsonify({'error': 'Friendship not found'}), 404
    if current_user.id not in [friendship.requester_id, friendship.addressee_id]:
        return jsonify({'error': 'Not authorized to delete this friendship'}), 403

    db.session.delete(friendship)
    db.session.commit()
    return jsonify({'message': 'Friendship deleted successfully'})

@social_bp.route('/users/search', methods=['GET'])
@login_required
def search_users():
    term = request.args.get('term')
    user_id = request.args.get('userId')
    if not term or not user_id:
        return 'Missing search term or userId', 400
    if parse_int(user_id) != current_user.id:
        return 'Forbidden', 403

    related = Friendship.query.filter(
        or_(Friendship.requester_id == current_user.id, Friendship.addressee_id == current_user.id)
    ).all()
    exclude_ids = {current_user.id}
    for f in related:
        exclude_ids.add(f.requester_id)
        exclude_ids.add(f.addressee_id)

    users = (User.query.filter(
                or_(User.name.ilike(f'%{term}%'), User.email.ilike(f'%{term}%')),
                ~User.id.in_(exclude_ids))
             .order_by(User.name.asc())
             .limit(SEARCH_LIMIT).all())

    return jsonify([{'id': u.id, 'name': u.name, 'email': u.email, 'image': u.image} for u in users])
