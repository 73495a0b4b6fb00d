from ..extensions import db
from ..utils.timezone_utils import TimezoneUtils
from .types import Money, Quantity


class Product(db.Model):
    """Finished menu item sold through orders."""
    __tablename__ = 'product'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    price = db.Column(Money(), nullable=False, default=0)
    is_active = db.Column(db.Boolean, nullable=False, default=True)
    prep_station_id = db.Column(db.Integer, db.ForeignKey('prep_station.id'), nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    prep_station = db.relationship('PrepStation')
    recipe_items = db.relationship(
        'ProductRecipeItem',
        back_populates='product',
        order_by='ProductRecipeItem.position',
        cascade='all, delete-orphan',
    )

    def __repr__(self):
        return f'<Product {self.id}: {self.name}>'


class ProductRecipeItem(db.Model):
    """Ingredient quantity consumed per one unit of product."""
    __tablename__ = 'product_recipe_item'

    id = db.Column(db.Integer, primary_key=True)
    product_id = db.Column(db.Integer, db.ForeignKey('product.id'), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredient.id'), nullable=False, index=True)
    quantity = db.Column(Quantity(), nullable=False)
    position = db.Column(db.Integer, nullable=False, default=0)

    product = db.relationship('Product', back_populates='recipe_items')
    ingredient = db.relationship('Ingredient')

    __table_args__ = (
        db.CheckConstraint('quantity > 0', name='check_product_recipe_quantity_positive'),
        db.UniqueConstraint('product_id', 'ingredient_id', name='uq_product_recipe_ingredient'),
    )


class PrepRecipe(db.Model):
    """Turns input ingredients into one prepared ingredient at a fixed yield."""
    __tablename__ = 'prep_recipe'

    id = db.Column(db.Integer, primary_key=True)
    name = db.Column(db.String(128), nullable=False)
    output_ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredient.id'), nullable=False, index=True)
    output_quantity = db.Column(Quantity(), nullable=False)
    estimated_labor_minutes = db.Column(db.Integer, nullable=True)
    created_at = db.Column(db.DateTime(timezone=True), default=TimezoneUtils.utc_now, nullable=False)

    output_ingredient = db.relationship('Ingredient')
    inputs = db.relationship(
        'PrepRecipeInput',
        back_populates='prep_recipe',
        order_by='PrepRecipeInput.position',
        cascade='all, delete-orphan',
    )

    __table_args__ = (
        db.CheckConstraint('output_quantity > 0', name='check_prep_recipe_output_positive'),
    )

    def __repr__(self):
        return f'<PrepRecipe {self.id}: {self.name}>'


class PrepRecipeInput(db.Model):
    __tablename__ = 'prep_recipe_input'

    id = db.Column(db.Integer, primary_key=True)
    prep_recipe_id = db.Column(db.Integer, db.ForeignKey('prep_recipe.id'), nullable=False, index=True)
    ingredient_id = db.Column(db.Integer, db.ForeignKey('ingredient.id'), nullable=False, index=True)
    quantity = db.Column(Quantity(), nullable=False)  # per run
    position = db.Column(db.Integer, nullable=False, default=0)

    prep_recipe = db.relationship('PrepRecipe', back_populates='inputs')
    ingredient = db.relationship('Ingredient')

    __table_args__ = (
        db.CheckConstraint('quantity > 0', name='check_prep_input_quantity_positive'),
    )
