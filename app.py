import os
import logging
from datetime import datetime, timezone
from flask import Flask, jsonify, request
from flask_cors import CORS
from flask_login import LoginManager
from config import Config
from models import db, User
from utils import ensure_temp_storage, cleanup_temp_files

logger = logging.getLogger(__name__)

def create_app(config_class=Config):
    app = Flask(__name__)
    app.config.from_object(config_class)

    logging.basicConfig(
        level=logging.INFO,
        format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
    )

    CORS(app, supports_credentials=True)
    db.init_app(app)

    # Initialize Login Manager
    login_manager = LoginManager()
    login_manager.init_app(app)

    @login_manager.user_loader
    def load_user(user_id):
        return db.session.get(User, int(user_id))

    @login_manager.unauthorized_handler
    def unauthorized():
        return jsonify({'success': False, 'error': 'Authentication required'}), 401

    # Create directories
    os.makedirs(app.config['STORAGE_PATH'], exist_ok=True)
    with app.app_context():
        ensure_temp_storage()

    from auth import auth_bp
    from admin import admin_bp
    from courses import courses_bp
    from instructor import instructor_bp
    from student import student_bp
    from notes import notes_bp
    from ratings import ratings_bp

    app.register_blueprint(auth_bp)
    app.register_blueprint(admin_bp)
    app.register_blueprint(courses_bp)
    app.register_blueprint(instructor_bp)
    app.register_blueprint(student_bp)
    app.register_blueprint(notes_bp)
    app.register_blueprint(ratings_bp)

    register_error_handlers(app)
    register_commands(app)

    @app.route('/api/health')
    def health():
        return jsonify({
            'status': 'ok',
            'timestamp': datetime.now(timezone.utc).isoformat()
        })

    return app

def register_error_handlers(app):
    @app.errorhandler(404)
    def not_found(error):
        if request.path.startswith('/api'):
            return jsonify({'success': False, 'error': 'API endpoint not found'}), 404
        return jsonify({'success': False, 'error': 'Not found'}), 404

    @app.errorhandler(405)
    def method_not_allowed(error):
        return jsonify({'success': False, 'error': 'Method not allowed'}), 405

    @app.errorhandler(413)
    def too_large(error):
        return jsonify({
            'success': False,
            'error': f"File too large. Maximum allowed size is {app.config['MAX_FILE_MB']}MB."
        }), 413

    @app.errorhandler(500)
    def server_error(error):
        db.session.rollback()
        logger.error(f"Server error: {getattr(error, 'original_exception', error)}")
        return jsonify({'success': False, 'error': 'Internal server error'}), 500

def register_commands(app):
    @app.cli.command('seed')
    def seed_command():
        """Create tables and load demo data."""
        from seed import seed_database
        db.create_all()
        seed_database()

    @app.cli.command('cleanup-tmp')
    def cleanup_command():
        """Delete stale files from the upload temp directory."""
        cleaned = cleanup_temp_files()
        print(f"Removed {cleaned} temp file(s)")

def setup_database(app):
    from seed import seed_database
    with app.app_context():
        db.create_all()
        seed_database()
        cleanup_temp_files()

if __name__ == '__main__':
    app = create_app()
    setup_database(app)
    port = int(os.environ.get("PORT", 3000))
    logger.info(f"Course portal running on http://localhost:{port}")

    app.run(host='0.0.0.0', port=port, debug=False)
