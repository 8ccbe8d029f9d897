"""
Sponsor tracker API.

A FastAPI service that persists sponsors and teams to a SQL database when it
is reachable and to JSON files on disk when it is not.
"""
