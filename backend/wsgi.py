# backend/wsgi.py
from ipms import create_app

app = create_app()
