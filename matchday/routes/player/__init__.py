from flask import Blueprint

bp = Blueprint("player", __name__)

from matchday.routes.player import routes  # noqa: F401, E402
