"""
Device session entity: marks which user is logged in.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class Session:
    """At most one session is active at any time across all users."""
    id: str
    user_id: str
    is_active: bool
    created_at: str

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'isActive': self.is_active,
            'createdAt': self.created_at,
        }

    def __repr__(self):
        return f'<Session {self.id} user={self.user_id} active={self.is_active}>'
