"""
Classroom Points Backend
========================

This is the Python package for the backend API.

HOW IT'S ORGANIZED:
------------------
- models/    = Data structures (what does a day status look like?)
- services/  = Workers (scoring rules, session lookup, storage)
- routers/   = API endpoints (the doors into our app)
- config.py  = Settings from the environment
- errors.py  = What can go wrong, and the HTTP status for each
- main.py    = Puts it all together and builds the app
"""
