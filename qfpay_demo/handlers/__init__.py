from .routes import create_app, result_response

__all__ = ["create_app", "result_response"]
