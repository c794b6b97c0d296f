"""
Development server: `python -m api`.
Production runs create_app() behind a WSGI server (gunicorn/uwsgi).
"""
from . import create_app

# config class picked from APP_ENV by get_config()
app = create_app()

if __name__ == "__main__":
    app.run(host=app.config["RUN_HOST"], port=app.config["RUN_PORT"], debug=app.config["DEBUG"])
