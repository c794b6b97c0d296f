from flask import Blueprint, current_app

bp = Blueprint("health", __name__)

VERSION = "1.0.0"


@bp.get("/health")
def health():
    """
    Liveness of the token service
    ---
    tags:
      - Health
    responses:
      200:
        description: Service is up
        schema:
          type: object
          properties:
            status:
              type: string
              example: ok
            service:
              type: string
              example: token-service
            env:
              type: string
              example: dev
            version:
              type: string
              example: 1.0.0
    """
    return {
        "status": "ok",
        "service": current_app.config["APP_NAME"],
        "env": current_app.config["APP_ENV"],
        "version": VERSION,
    }, 200
