import logging
import os
from flask import Flask, jsonify, request, abort
from config import Config
from errors import register_error_handlers
from extensions import db, login_manager, migrate
from models import Role, User
from services.credentials import create_user
from blueprints.auth.routes import bp as auth_bp
from blueprints.admin.routes import bp as admin_bp
from blueprints.intern.routes import bp as intern_bp

def create_app(config_object=Config):
    app = Flask(__name__)
    app.config.from_object(config_object)
    logging.basicConfig(format="%(asctime)s %(levelname)s %(name)s: %(message)s")
    logging.getLogger().setLevel(app.config.get("LOG_LEVEL", "INFO"))

    db.init_app(app)
    login_manager.init_app(app)
    migrate.init_app(app, db)

    register_error_handlers(app)
    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(intern_bp)

    @app.route("/")
    def index():
        return jsonify({"status": "ok"})

    @app.route("/init")
    def init():
        # Guard: only allow in debug or with INIT_TOKEN
        if not app.debug:
            token = request.args.get("token")
            if not token or token != os.getenv("INIT_TOKEN"):
                abort(403)
        # Ensure tables exist before seeding (useful for fresh SQLite setups)
        db.create_all()
        email = os.getenv("ADMIN_SEED_EMAIL", "admin@example.com")
        created = False
        if not db.session.query(User.id).filter_by(email=email).first():
            create_user(email, os.getenv("ADMIN_SEED_PASSWORD", "admin123"), Role.ADMIN)
            created = True
        return jsonify({"admin": email, "created": created})

    return app

if __name__ == "__main__":
    app = create_app()
    debug = os.getenv("FLASK_DEBUG") == "1"
    app.run(host="0.0.0.0", port=int(os.getenv("PORT", 5000)), debug=debug)
