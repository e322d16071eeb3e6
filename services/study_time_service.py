from models import User

def credit_study_time(user_ids, minutes):
    if not user_ids or not minutes or minutes <= 0:
        return
    for user in User.query.filter(User.id.in_(list(user_ids))).all():
        user.total_study_time = (user.total_study_time or 0) + minutes

def credit_participants(shared, minutes):
    credit_study_time({p.user_id for p in shared.participants}, minutes)

def adjust_tasks_done(user, delta):
    user.total_tasks_done = max(0, (user.total_tasks_done or 0) + delta)
