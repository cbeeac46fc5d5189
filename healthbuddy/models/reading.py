"""
Blood Pressure Reading entity.
"""
from dataclasses import dataclass


@dataclass(frozen=True)
class BloodPressureReading:
    """
    A single blood pressure measurement. Readings are created and deleted,
    never updated; the timestamp is assigned by the store at insertion.
    """
    id: str
    user_id: str
    systolic: int
    diastolic: int
    heart_rate: int
    timestamp: str

    def to_dict(self):
        return {
            'id': self.id,
            'userId': self.user_id,
            'systolic': self.systolic,
            'diastolic': self.diastolic,
            'heartRate': self.heart_rate,
            'timestamp': self.timestamp,
        }

    @classmethod
    def from_dict(cls, data: dict) -> 'BloodPressureReading':
        return cls(
            id=str(data['id']),
            user_id=str(data['userId']),
            systolic=data['systolic'],
            diastolic=data['diastolic'],
            heart_rate=data.get('heartRate'),
            timestamp=data.get('timestamp'),
        )

    def __repr__(self):
        return f'<BloodPressureReading {self.id}: {self.systolic}/{self.diastolic}>'
