"""Client-side session guard.

  - state.py       - GuardStatus, GuardDecision, GuardRoutes
  - route_guard.py - SessionGuard state machine (generation-token cancellation)
  - session.py     - AuthStatusClient (whoami / refresh) + CSRF header auth
  - unlock.py      - UnlockState with inactivity / absolute auto-lock
"""
