# Routes package - registers all blueprints with the Flask app

def register_blueprints(app):
    """Register all route blueprints with the Flask app."""
    from .bluetooth import bluetooth_bp

    app.register_blueprint(bluetooth_bp)
