from flask import Flask
from .config import Config
from .errors import register_error_handlers
from .extensions import init_extensions
from .logging_config import configure_logging

# blueprints
from .blueprints.main import main_bp
from .blueprints.enquiries import enquiries_bp
from .blueprints.pickup import pickup_bp
from .blueprints.service import service_bp
from .blueprints.billing import billing_bp
from .blueprints.delivery import delivery_bp

def create_app(config_object=None):
    app = Flask(__name__)
    app.config.from_object(config_object or Config)

    configure_logging(app)
    init_extensions(app)
    register_error_handlers(app)

    app.register_blueprint(main_bp)
    app.register_blueprint(enquiries_bp, url_prefix="/enquiries")
    app.register_blueprint(pickup_bp, url_prefix="/pickup")
    app.register_blueprint(service_bp, url_prefix="/service")
    app.register_blueprint(billing_bp, url_prefix="/billing")
    app.register_blueprint(delivery_bp, url_prefix="/delivery")

    from .seeds import seed_demo_command
    app.cli.add_command(seed_demo_command)

    return app
