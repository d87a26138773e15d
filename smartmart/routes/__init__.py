from .auth import bp as auth_bp
from .categories import bp as categories_bp
from .checkout import bp as checkout_bp
from .product_images import bp as product_images_bp
from .products import bp as products_bp
from .users import bp as users_bp


def register_blueprints(app):
    for blueprint in (
        auth_bp,
        categories_bp,
        products_bp,
        product_images_bp,
        checkout_bp,
        users_bp,
    ):
        app.register_blueprint(blueprint)
