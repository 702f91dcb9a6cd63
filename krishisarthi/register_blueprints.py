"""
Centralized Blueprint Registration
All blueprints MUST be registered inside register_all_blueprints(app)
"""

import logging

logger = logging.getLogger(__name__)


def register_all_blueprints(app):

    # Root
    from krishisarthi.routes.root import root_bp
    app.register_blueprint(root_bp)

    # Auth + profile
    from krishisarthi.routes.auth.auth_routes import auth_bp, user_bp
    app.register_blueprint(auth_bp)
    app.register_blueprint(user_bp)

    # Crop marketplace
    from krishisarthi.routes.marketplace.listing_routes import listings_bp
    app.register_blueprint(listings_bp)

    # Equipment quotations
    from krishisarthi.routes.equipment.quotation_routes import quotations_bp
    app.register_blueprint(quotations_bp)

    logger.info("✓ All blueprints registered")
