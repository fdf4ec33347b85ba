from flask import Blueprint, redirect, url_for

main_bp = Blueprint('main', __name__)


@main_bp.route('/')
def index():
    # The game is the whole site
    return redirect(url_for('tic_tac_toe.index'))
