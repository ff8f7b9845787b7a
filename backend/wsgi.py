# backend/wsgi.py
from stockbook import create_app

app = create_app()
