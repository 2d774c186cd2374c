"""Game domain services: rounds, guesses, timers, lobby countdown, sessions.

HTTP routes and socket handlers call into these; nothing here knows about
request parsing or response envelopes.
"""
