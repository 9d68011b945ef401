from datetime import datetime, timezone
from typing import Any, Dict, Optional


class ProductTypes:
    """Stored productType values"""
    RING = 'Anillo'
    NECKLACE = 'Collar'
    BRACELET = 'Pulsera'
    EARRING = 'Aros'

    ALL = [RING, NECKLACE, BRACELET, EARRING]


class AttributeVariant:
    """Attribute shape of one product type."""

    def __init__(self, required, optional=(), numeric=()):
        self.required = tuple(required)
        self.optional = tuple(optional)
        self.numeric = tuple(numeric)

    @property
    def keys(self):
        return self.required + self.optional

    def pick(self, attributes: Dict[str, Any]) -> Dict[str, Any]:
        """Keep only the keys that belong to this variant."""
        return {key: attributes[key] for key in self.keys if key in attributes}


ATTRIBUTE_VARIANTS = {
    ProductTypes.RING: AttributeVariant(
        required=['size', 'material'],
        optional=['gemstone', 'carats'],
        numeric=['carats'],
    ),
    ProductTypes.NECKLACE: AttributeVariant(
        required=['length', 'material', 'claspType', 'chainType'],
    ),
    ProductTypes.BRACELET: AttributeVariant(
        required=['length', 'material', 'claspType', 'style'],
    ),
    ProductTypes.EARRING: AttributeVariant(
        required=['type', 'material', 'backType'],
        optional=['length'],
    ),
}

# Fields an admin may change through the generic update endpoint
UPDATABLE_FIELDS = [
    'name',
    'description',
    'basePrice',
    'productType',
    'images',
    'stock',
    'category',
    'tags',
    'isActive',
]


def default_discount() -> Dict[str, Any]:
    return {'percentage': 0, 'isActive': False}


class Product:
    """Jewelry product as stored in the products collection"""

    def __init__(self, name, description, base_price, product_type, images,
                 stock, category, tags, is_active=True, attributes=None,
                 reserved=0, discount=None):
        self.name = name
        self.description = description
        self.base_price = base_price
        self.product_type = product_type
        self.images = list(images or [])
        self.stock = stock
        self.reserved = reserved
        self.category = category
        self.tags = list(tags or [])
        self.is_active = is_active
        self.attributes = attributes
        self.discount = discount or default_discount()
        self.created_at = datetime.now(timezone.utc)
        self.updated_at = self.created_at

    def to_dict(self) -> Dict[str, Any]:
        """转换为字典"""
        data = {
            'name': self.name,
            'description': self.description,
            'basePrice': self.base_price,
            'productType': self.product_type,
            'images': self.images,
            'stock': self.stock,
            'reserved': self.reserved,
            'category': self.category,
            'tags': self.tags,
            'isActive': self.is_active,
            'discount': self.discount,
            'createdAt': self.created_at,
            'updatedAt': self.updated_at,
        }
        if self.attributes is not None:
            data['attributes'] = self.attributes
        return data

    @staticmethod
    def build(payload: Dict[str, Any]) -> 'Product':
        """New product from an admin create payload.

        Only catalog fields are read; stock reservations, the discount and the
        timestamps always start from their defaults.
        """
        is_active = payload.get('isActive')
        return Product(
            name=payload.get('name'),
            description=payload.get('description'),
            base_price=payload.get('basePrice'),
            product_type=payload.get('productType'),
            images=payload.get('images', []),
            stock=payload.get('stock', 0),
            category=payload.get('category'),
            tags=payload.get('tags', []),
            is_active=True if is_active is None else is_active,
            attributes=payload.get('attributes'),
        )

    @staticmethod
    def from_dict(data: Dict[str, Any]) -> 'Product':
        """Rebuild a product from a stored document or a seed file entry."""
        is_active = data.get('isActive')
        product = Product(
            name=data.get('name'),
            description=data.get('description'),
            base_price=data.get('basePrice'),
            product_type=data.get('productType'),
            images=data.get('images', []),
            stock=data.get('stock', 0),
            category=data.get('category'),
            tags=data.get('tags', []),
            is_active=True if is_active is None else is_active,
            attributes=data.get('attributes'),
            reserved=data.get('reserved', 0),
            discount=data.get('discount'),
        )
        # JSON seed files carry strings here; only real dates are kept
        if isinstance(data.get('createdAt'), datetime):
            product.created_at = data['createdAt']
        if isinstance(data.get('updatedAt'), datetime):
            product.updated_at = data['updatedAt']
        return product


def variant_for(product_type: Optional[str]) -> Optional[AttributeVariant]:
    return ATTRIBUTE_VARIANTS.get(product_type)
