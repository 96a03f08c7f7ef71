# backend/wsgi.py
from crowdfund import create_app

app = create_app()
