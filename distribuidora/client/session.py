"""
Login session kept between runs of the point-of-sale client.

State is restored explicitly with ``load()`` at startup and removed with
``clear()`` on logout; nothing is shared through module globals.
"""
import json
import logging
import os
from pathlib import Path

logger = logging.getLogger(__name__)

SESSION_FILE_ENV = 'DISTRIBUIDORA_SESSION_FILE'
DEFAULT_SESSION_FILE = Path.home() / '.distribuidora' / 'session.json'


def default_session_path():
    override = os.getenv(SESSION_FILE_ENV)
    return Path(override) if override else DEFAULT_SESSION_FILE


class Session:
    """Current user and JWT pair, persisted as JSON"""

    def __init__(self, path=None):
        self.path = Path(path) if path else default_session_path()
        self.user = None
        self.access_token = None
        self.refresh_token = None

    @property
    def is_authenticated(self):
        return bool(self.access_token and self.user)

    @property
    def is_admin(self):
        return bool(self.user) and self.user.get('role') == 'admin'

    def load(self):
        """Restore a saved session; returns False when there is none"""
        if not self.path.exists():
            return False
        try:
            data = json.loads(self.path.read_text(encoding='utf-8'))
        except (OSError, ValueError) as e:
            logger.warning(f"Ignoring unreadable session file {self.path}: {e}")
            return False
        self.user = data.get('user')
        self.access_token = data.get('access')
        self.refresh_token = data.get('refresh')
        return self.is_authenticated

    def save(self):
        self.path.parent.mkdir(parents=True, exist_ok=True)
        payload = {'user': self.user, 'access': self.access_token, 'refresh': self.refresh_token}
        self.path.write_text(json.dumps(payload), encoding='utf-8')

    def clear(self):
        self.user = None
        self.access_token = None
        self.refresh_token = None
        try:
            self.path.unlink()
        except FileNotFoundError:
            pass

    def update_from_login(self, data):
        """Take ``{access, refresh, user}`` from ``ApiClient.login`` and save"""
        self.user = data.get('user')
        self.access_token = data.get('access')
        self.refresh_token = data.get('refresh')
        self.save()

    def attach(self, client):
        """Hand the stored tokens to an ``ApiClient``"""
        client.access_token = self.access_token
        client.refresh_token = self.refresh_token
        return client

    def sync_from(self, client):
        """Persist tokens rotated by the client (after a refresh)"""
        if (client.access_token, client.refresh_token) != (self.access_token, self.refresh_token):
            self.access_token = client.access_token
            self.refresh_token = client.refresh_token
            self.save()
