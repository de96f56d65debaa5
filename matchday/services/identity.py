"""
Player identity resolution

Authentication happens upstream; the gateway forwards the caller's email,
name and roles in request headers. Flask-Login turns those headers into an
Identity, and resolve_or_create_player() maps an Identity to a Player row,
provisioning one on first contact.
"""

import logging

from flask import current_app
from flask_login import UserMixin
from sqlalchemy.exc import IntegrityError

from matchday import db
from matchday.errors import UnauthenticatedError
from matchday.models import Player

logger = logging.getLogger(__name__)


class Identity(UserMixin):
    """Caller identity as asserted by the upstream gateway"""

    def __init__(self, email, display_name=None, roles=()):
        self.email = email.strip().lower()
        self.display_name = (display_name or "").strip() or self.email
        self.roles = frozenset(role.strip().lower() for role in roles if role.strip())

    def get_id(self):
        return self.email

    @property
    def is_admin(self):
        admin_emails = current_app.config.get("ADMIN_EMAILS", [])
        return "admin" in self.roles or self.email in admin_emails

    def __repr__(self):
        return f"<Identity {self.email}>"


def load_identity_from_request(request):
    """Flask-Login request loader: build an Identity from gateway headers"""
    config = current_app.config
    email = request.headers.get(config.get("AUTH_EMAIL_HEADER", "X-User-Email"))
    if not email or not email.strip():
        return None

    name = request.headers.get(config.get("AUTH_NAME_HEADER", "X-User-Name"))
    roles = request.headers.get(config.get("AUTH_ROLES_HEADER", "X-User-Roles"), "")
    return Identity(email, name, roles.split(","))


def find_player_id(identity):
    """Player ID for an identity, without provisioning"""
    if identity is None or not getattr(identity, "email", None):
        return None
    player = Player.query.filter_by(email=identity.email).first()
    return player.id if player else None


def resolve_or_create_player(identity):
    """
    Get or auto-create the Player for an identity.

    Returns:
        int: Player ID

    Raises:
        UnauthenticatedError: no identity or no email
    """
    if identity is None or not getattr(identity, "email", None):
        raise UnauthenticatedError("User not authenticated")

    player = Player.query.filter_by(email=identity.email).first()
    if player:
        return player.id

    player = Player(email=identity.email, display_name=identity.display_name)
    try:
        with db.session.begin_nested():
            db.session.add(player)
    except IntegrityError:
        # Provisioned concurrently by another request
        player = Player.query.filter_by(email=identity.email).first()
        if player is None:
            raise
        return player.id

    logger.info(f"Provisioned player {player.id} for {identity.email}")
    return player.id
