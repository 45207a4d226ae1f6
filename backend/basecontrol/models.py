from basecontrol import db
import json


class Match(db.Model):
    __tablename__ = 'match'
    id = db.Column(db.Integer, primary_key=True)
    status = db.Column(db.String(16), nullable=False, default='idle')  # idle, playing, paused, ended
    end_time = db.Column(db.BigInteger, nullable=False, default=0)  # epoch ms
    remaining_time = db.Column(db.BigInteger, nullable=True)  # set only while paused
    bases = db.relationship(
        'BaseState',
        back_populates='match',
        order_by='BaseState.base_id',
        cascade='all, delete-orphan',
    )

    def base(self, base_id):
        for b in self.bases:
            if b.base_id == base_id:
                return b
        return None

    def apply_fields(self, fields):
        """Merge a partial match update into this row and its bases."""
        if 'status' in fields:
            self.status = fields['status']
        if 'end_time' in fields:
            self.end_time = int(fields['end_time'] or 0)
        if 'remaining_time' in fields:
            value = fields['remaining_time']
            self.remaining_time = int(value) if value is not None else None
        for base_id, base_fields in (fields.get('bases') or {}).items():
            row = self.base(base_id)
            if row is None:
                row = BaseState(base_id=base_id)
                self.bases.append(row)
            row.apply_fields(base_fields)

    def to_dict(self):
        data = {
            'status': self.status,
            'end_time': self.end_time,
            'bases': {b.base_id: b.to_dict() for b in self.bases},
        }
        if self.remaining_time is not None:
            data['remaining_time'] = self.remaining_time
        return data


class BaseState(db.Model):
    __tablename__ = 'base'
    __table_args__ = (db.UniqueConstraint('match_id', 'base_id', name='uq_base_match_base_id'),)
    id = db.Column(db.Integer, primary_key=True)
    match_id = db.Column(db.Integer, db.ForeignKey('match.id'), nullable=False)
    base_id = db.Column(db.String(32), nullable=False)
    owner = db.Column(db.String(16), nullable=False, default='neutral')
    held_by = db.Column(db.String(16), nullable=True)
    last_interaction = db.Column(db.BigInteger, nullable=False, default=0)  # epoch ms
    scores = db.Column(db.Text, nullable=True)  # JSON-encoded {team: float}
    match = db.relationship('Match', back_populates='bases')

    def apply_fields(self, fields):
        if 'owner' in fields:
            self.owner = fields['owner']
        if 'held_by' in fields:
            self.held_by = fields['held_by']
        if 'last_interaction' in fields:
            self.last_interaction = int(fields['last_interaction'] or 0)
        if 'scores' in fields:
            self.scores = json.dumps(fields['scores'])

    def to_dict(self):
        try:
            scores = json.loads(self.scores) if self.scores else {}
        except ValueError:
            scores = {}
        return {
            'id': self.base_id,
            'owner': self.owner or 'neutral',
            'held_by': self.held_by,
            'last_interaction': self.last_interaction or 0,
            'scores': scores,
        }
