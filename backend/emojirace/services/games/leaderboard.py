class Leaderboard:
    """Per-community cumulative scores. Reads never fail; an outage shows up as an empty board."""

    def __init__(self, store, telemetry):
        self.store = store
        self.telemetry = telemetry

    def top(self, community, limit=10):
        self.telemetry.incr('leaderboard.reads')
        board = []
        for position, entry in enumerate(self.store.top_scores(community, limit), start=1):
            # Equal scores share a rank, matching rank()
            tied = board and board[-1]['score'] == entry.score
            board.append(entry.to_dict(rank=board[-1]['rank'] if tied else position))
        return board

    def rank(self, community, username):
        found = self.store.leaderboard_rank(community, username)
        if found is None:
            return None
        entry, rank = found
        return entry.to_dict(rank=rank)
