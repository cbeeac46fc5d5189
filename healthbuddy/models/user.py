"""
User entity shared by every storage backend.
"""
from dataclasses import dataclass

# Profile attributes a user may change after registration, mapped to
# their camelCase wire names.
PROFILE_FIELDS = {
    'height': 'height',
    'weight': 'weight',
    'age': 'age',
    'blood_group': 'bloodGroup',
    'allergies': 'allergies',
}


@dataclass(frozen=True)
class User:
    """
    A registered user. The password hash never leaves the storage layer,
    so it is not part of the entity.
    """
    id: str
    name: str
    email: str
    created_at: str
    height: float = None
    weight: float = None
    age: int = None
    blood_group: str = None
    allergies: str = None
    updated_at: str = None

    def to_dict(self):
        return {
            'id': self.id,
            'name': self.name,
            'email': self.email,
            'height': self.height,
            'weight': self.weight,
            'age': self.age,
            'bloodGroup': self.blood_group,
            'allergies': self.allergies,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'User':
        """Build a User from its wire shape (as returned by the remote API)."""
        return cls(
            id=str(data['id']),
            name=data.get('name'),
            email=data.get('email'),
            created_at=data.get('createdAt'),
            height=data.get('height'),
            weight=data.get('weight'),
            age=data.get('age'),
            blood_group=data.get('bloodGroup'),
            allergies=data.get('allergies'),
            updated_at=data.get('updatedAt'),
        )

    def __repr__(self):
        return f'<User {self.id}>'


def profile_to_wire(profile: dict) -> dict:
    return {PROFILE_FIELDS[k]: v for k, v in profile.items() if k in PROFILE_FIELDS}
