SCHEDULED = 'scheduled'
IN_PROGRESS = 'in_progress'
COMPLETED = 'completed'
MATCH_STATUSES = (SCHEDULED, IN_PROGRESS, COMPLETED)

ROLE_WINNER = 'winner'
ROLE_LOSER = 'loser'

SIDE_A = 'a'
SIDE_B = 'b'
SIDES = (SIDE_A, SIDE_B)


class Entrant:
    """A team (or a group of players) taking part in a pool or bracket."""

    def __init__(self, id, name=None, seed=None, members=None):
        self.id = id
        self.name = name if name is not None else str(id)
        self.seed = seed
        self.members = list(members) if members else []

    def __eq__(self, other):
        return isinstance(other, Entrant) and self.id == other.id

    def __hash__(self):
        return hash(self.id)

    def __repr__(self):
        return f"Entrant(id={self.id}, name={self.name}, seed={self.seed})"

    def to_dict(self):
        data = {'id': self.id, 'name': self.name}
        if self.seed is not None:
            data['seed'] = self.seed
        if self.members:
            data['members'] = list(self.members)
        return data

    @classmethod
    def from_dict(cls, data):
        # A bare string is accepted as both id and name (teams.yaml style)
        if isinstance(data, str):
            return cls(id=data, name=data)
        return cls(id=data['id'], name=data.get('name'), seed=data.get('seed'),
                   members=data.get('members'))


class ResolvedSlot:
    is_resolved = True

    def __init__(self, entrant):
        self.entrant = entrant

    @property
    def label(self):
        return self.entrant.name

    def __eq__(self, other):
        return isinstance(other, ResolvedSlot) and self.entrant == other.entrant

    def __repr__(self):
        return f"ResolvedSlot(entrant={self.entrant.name})"

    def to_dict(self):
        return {'entrant': self.entrant.to_dict()}


class PlaceholderSlot:
    """Awaits the winner or loser of another match."""

    is_resolved = False
    entrant = None

    def __init__(self, source_match_id, role):
        if role not in (ROLE_WINNER, ROLE_LOSER):
            raise ValueError(f"Unknown placeholder role: {role}")
        self.source_match_id = source_match_id
        self.role = role

    @property
    def label(self):
        return f"{self.role.capitalize()} M{self.source_match_id}"

    def __eq__(self, other):
        return (isinstance(other, PlaceholderSlot)
                and self.source_match_id == other.source_match_id
                and self.role == other.role)

    def __repr__(self):
        return f"PlaceholderSlot(source={self.source_match_id}, role={self.role})"

    def to_dict(self):
        return {'source_match_id': self.source_match_id, 'role': self.role}


def slot_from_dict(data):
    if 'entrant' in data:
        return ResolvedSlot(Entrant.from_dict(data['entrant']))
    return PlaceholderSlot(data['source_match_id'], data['role'])


class MatchFormat:
    def __init__(self, sets_to_win=1, points_per_set=21, tie_break_enabled=False, tie_break_points=15):
        for name, value in (('sets_to_win', sets_to_win), ('points_per_set', points_per_set),
                            ('tie_break_points', tie_break_points)):
            if value is None and name == 'tie_break_points':
                continue
            if isinstance(value, bool) or not isinstance(value, int) or value < 1:
                raise ValueError(f"{name} must be a positive integer, got {value!r}")
        self.sets_to_win = sets_to_win
        self.points_per_set = points_per_set
        self.tie_break_enabled = tie_break_enabled
        self.tie_break_points = tie_break_points

    @property
    def max_sets(self):
        return 2 * self.sets_to_win - 1

    def __eq__(self, other):
        return isinstance(other, MatchFormat) and self.to_dict() == other.to_dict()

    def __repr__(self):
        return (f"MatchFormat(sets_to_win={self.sets_to_win}, points_per_set={self.points_per_set}, "
                f"tie_break_enabled={self.tie_break_enabled})")

    def to_dict(self):
        return {
            'sets_to_win': self.sets_to_win,
            'points_per_set': self.points_per_set,
            'tie_break_enabled': self.tie_break_enabled,
            'tie_break_points': self.tie_break_points,
        }

    @classmethod
    def from_dict(cls, data=None):
        data = data or {}
        return cls(
            sets_to_win=data.get('sets_to_win', 1),
            points_per_set=data.get('points_per_set', 21),
            tie_break_enabled=data.get('tie_break_enabled', False),
            tie_break_points=data.get('tie_break_points', 15),
        )


class Match:
    def __init__(self, id, round, round_name, slot_a, slot_b, match_format=None, pool=None):
        match_format = match_format or MatchFormat()
        self.id = id
        self.round = round
        self.round_name = round_name
        self.slot_a = slot_a
        self.slot_b = slot_b
        self.pool = pool
        self.sets = []
        self.status = SCHEDULED
        self.winner = None
        self.loser = None
        self.sets_won_a = 0
        self.sets_won_b = 0
        self.sets_to_win = match_format.sets_to_win
        self.points_per_set = match_format.points_per_set
        self.tie_break_enabled = match_format.tie_break_enabled
        self.tie_break_points = match_format.tie_break_points
        # Outgoing edges: (destination_match_id, side) or None
        self.winner_to = None
        self.loser_to = None

    @property
    def match_format(self):
        return MatchFormat(self.sets_to_win, self.points_per_set,
                           self.tie_break_enabled, self.tie_break_points)

    @property
    def is_ready(self):
        """Both participants are known."""
        return self.slot_a.is_resolved and self.slot_b.is_resolved

    def slot(self, side):
        if side == SIDE_A:
            return self.slot_a
        if side == SIDE_B:
            return self.slot_b
        raise ValueError(f"Unknown side: {side}")

    def set_slot(self, side, slot):
        if side == SIDE_A:
            self.slot_a = slot
        elif side == SIDE_B:
            self.slot_b = slot
        else:
            raise ValueError(f"Unknown side: {side}")

    def entrant(self, side):
        return self.slot(side).entrant

    def clear_result(self):
        self.sets = []
        self.status = SCHEDULED
        self.winner = None
        self.loser = None
        self.sets_won_a = 0
        self.sets_won_b = 0

    def copy(self):
        clone = Match(self.id, self.round, self.round_name, self.slot_a, self.slot_b,
                      self.match_format, self.pool)
        clone.sets = [list(s) for s in self.sets]
        clone.status = self.status
        clone.winner = self.winner
        clone.loser = self.loser
        clone.sets_won_a = self.sets_won_a
        clone.sets_won_b = self.sets_won_b
        clone.winner_to = self.winner_to
        clone.loser_to = self.loser_to
        return clone

    def __repr__(self):
        return (f"Match(id={self.id}, round={self.round_name}, "
                f"{self.slot_a.label} vs {self.slot_b.label}, status={self.status})")

    def to_dict(self):
        return {
            'id': self.id,
            'round': self.round,
            'round_name': self.round_name,
            'pool': self.pool,
            'slot_a': self.slot_a.to_dict(),
            'slot_b': self.slot_b.to_dict(),
            'sets': [list(s) for s in self.sets],
            'status': self.status,
            'winner': self.winner.to_dict() if self.winner else None,
            'loser': self.loser.to_dict() if self.loser else None,
            'sets_won_a': self.sets_won_a,
            'sets_won_b': self.sets_won_b,
            'format': self.match_format.to_dict(),
            'winner_to': list(self.winner_to) if self.winner_to else None,
            'loser_to': list(self.loser_to) if self.loser_to else None,
        }

    @classmethod
    def from_dict(cls, data):
        match = cls(
            id=data['id'],
            round=data['round'],
            round_name=data['round_name'],
            slot_a=slot_from_dict(data['slot_a']),
            slot_b=slot_from_dict(data['slot_b']),
            match_format=MatchFormat.from_dict(data.get('format')),
            pool=data.get('pool'),
        )
        match.sets = [list(s) for s in data.get('sets') or []]
        match.status = data.get('status', SCHEDULED)
        match.winner = Entrant.from_dict(data['winner']) if data.get('winner') else None
        match.loser = Entrant.from_dict(data['loser']) if data.get('loser') else None
        match.sets_won_a = data.get('sets_won_a', 0)
        match.sets_won_b = data.get('sets_won_b', 0)
        match.winner_to = tuple(data['winner_to']) if data.get('winner_to') else None
        match.loser_to = tuple(data['loser_to']) if data.get('loser_to') else None
        return match
