# wsgi.py
from lubricentro import create_app

application = create_app()
