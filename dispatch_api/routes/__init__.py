"""
API Routes Package

- user.py: The authenticated account (settings, password, logout, deletion)
- bleeter.py: Bleeter posts and author profiles
- events.py: Server-sent event stream of unit status broadcasts

Routers are registered in main.py.
"""
