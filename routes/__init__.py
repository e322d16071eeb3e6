from flask import Blueprint

auth_bp = Blueprint('auth', __name__)
main_bp = Blueprint('main', __name__)
social_bp = Blueprint('social', __name__)
study_bp = Blueprint('study', __name__)
api_bp = Blueprint('api', __name__)

from . import auth, main, social, study, api
