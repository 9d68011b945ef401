"""
产品服务 - catalog use cases

本模块只包含高级业务逻辑，底层实现委托给:
- product_repository: storage (MongoDB or in-memory)
- product_filters: catalog query building
- enrichment + pricing: derived price and stock fields
"""

import logging
from datetime import datetime
from typing import Any, Dict, Mapping, Optional

from flask import current_app

from store.errors import NotFoundError, ValidationError
from store.models.product import UPDATABLE_FIELDS, Product, variant_for

from . import enrichment
from . import pricing
from . import product_filters as filters
from .product_repository import RELATED_PROJECTION

logger = logging.getLogger(__name__)

PRODUCT_NOT_FOUND = 'Producto no encontrado'


class ProductService:
    """产品服务类"""

    @staticmethod
    def _repository():
        return current_app.extensions['product_repository']

    @staticmethod
    def _config(name: str, default: Any) -> Any:
        return current_app.config.get(name, default)

    @staticmethod
    def _get_or_404(product_id: str) -> Dict[str, Any]:
        product = ProductService._repository().find_by_id(product_id)
        if product is None:
            raise NotFoundError(PRODUCT_NOT_FOUND)
        return product

    # ========== Catalog reads ==========

    @staticmethod
    def search_products(params: Mapping[str, Any], now: Optional[datetime] = None) -> Dict[str, Any]:
        """Filtered, sorted, paginated catalog page.

        ``params`` holds the raw query values; a repeated parameter may be a
        list.
        """
        query = filters.build_catalog_query(
            params, ProductService._config('DEFAULT_PER_PAGE', filters.DEFAULT_PER_PAGE)
        )
        repository = ProductService._repository()

        total = repository.count(query['filters'])
        products = repository.find(
            query['filters'],
            sort=query['sort'],
            skip=query['skip'],
            limit=query['limit'],
        )
        logger.debug("Catalog query %s matched %d products", query['filters'], total)

        return {
            'products': enrichment.enrich_many(products, now),
            'totalProducts': total,
            'totalPages': filters.total_pages(total, query['perPage']),
            'perPage': query['perPage'],
            'currentPage': query['page'],
            'filters': filters.build_filter_summary(params),
        }

    @staticmethod
    def get_categories() -> Dict[str, Any]:
        """Active categories with product counts, largest first."""
        categories = ProductService._repository().category_counts()
        if not categories:
            raise NotFoundError('No se encontraron categorías')

        return {
            'categories': categories,
            'totalCategories': len(categories),
            'totalProducts': sum(c['productCount'] for c in categories),
        }

    @staticmethod
    def get_category_products(category_name: str, page: Any = None, per_page: Any = None,
                              now: Optional[datetime] = None) -> Dict[str, Any]:
        pagination = filters.paginate(
            page, per_page, ProductService._config('DEFAULT_PER_PAGE', filters.DEFAULT_PER_PAGE)
        )
        query = {'isActive': True, 'category': category_name}
        repository = ProductService._repository()

        total = repository.count(query)
        products = repository.find(
            query,
            sort={'field': 'name', 'direction': filters.ASCENDING},
            skip=pagination['skip'],
            limit=pagination['limit'],
        )
        return {
            'products': enrichment.enrich_many(products, now),
            'totalProducts': total,
            'totalPages': filters.total_pages(total, pagination['perPage']),
            'perPage': pagination['perPage'],
            'currentPage': pagination['page'],
            'categoryName': category_name,
        }

    @staticmethod
    def get_product(product_id: str, now: Optional[datetime] = None) -> Dict[str, Any]:
        """Product detail with derived fields and related products."""
        current = now or pricing.utcnow()
        product = ProductService._get_or_404(product_id)

        related = ProductService._repository().find(
            filters.build_related_filter(product),
            limit=ProductService._config('RELATED_PRODUCTS_LIMIT', 6),
            projection=RELATED_PROJECTION,
        )

        detail = enrichment.enrich(product, current)
        detail['relatedProducts'] = enrichment.enrich_many(related, current)
        return detail

    # ========== Admin writes ==========

    @staticmethod
    def create_product(payload: Dict[str, Any]) -> Dict[str, Any]:
        product = Product.build(payload)
        variant = variant_for(product.product_type)
        if variant and product.attributes:
            product.attributes = variant.pick(product.attributes)

        stored = ProductService._repository().insert(product.to_dict())
        logger.info("Created product %s (%s)", stored['_id'], stored['name'])
        return stored

    @staticmethod
    def update_product(product_id: str, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Update whitelisted fields; attributes are rebuilt for the
        effective product type and unknown keys are dropped."""
        product = ProductService._get_or_404(product_id)

        updates = {field: payload[field] for field in UPDATABLE_FIELDS if field in payload}

        if payload.get('attributes'):
            effective_type = payload.get('productType') or product.get('productType')
            variant = variant_for(effective_type)
            updates['attributes'] = variant.pick(payload['attributes']) if variant else {}

        if 'stock' in updates and updates['stock'] < (product.get('reserved') or 0):
            raise ValidationError.for_field(
                'stock', 'El stock no puede ser menor a las unidades reservadas'
            )

        updated = ProductService._repository().update(product_id, updates)
        if updated is None:
            raise NotFoundError(PRODUCT_NOT_FOUND)
        return updated

    @staticmethod
    def set_discount(product_id: str, discount: Dict[str, Any]) -> Dict[str, Any]:
        """Replace the product's discount object as a whole."""
        updated = ProductService._repository().update(product_id, {'discount': discount})
        if updated is None:
            raise NotFoundError(PRODUCT_NOT_FOUND)
        logger.info("Discount on %s set to %s%% (active=%s)",
                    product_id, discount.get('percentage'), discount.get('isActive'))
        return updated

    @staticmethod
    def update_status(product_id: str, is_active: bool) -> Dict[str, Any]:
        updated = ProductService._repository().update(product_id, {'isActive': is_active})
        if updated is None:
            raise NotFoundError(PRODUCT_NOT_FOUND)
        return updated

    @staticmethod
    def update_stock(product_id: str, stock: int) -> Dict[str, Any]:
        product = ProductService._get_or_404(product_id)
        if stock < (product.get('reserved') or 0):
            raise ValidationError.for_field(
                'stock', 'El stock no puede ser menor a las unidades reservadas'
            )
        updated = ProductService._repository().update(product_id, {'stock': stock})
        if updated is None:
            raise NotFoundError(PRODUCT_NOT_FOUND)
        return updated

    @staticmethod
    def delete_product(product_id: str) -> None:
        if not ProductService._repository().delete(product_id):
            raise NotFoundError(PRODUCT_NOT_FOUND)
        logger.info("Deleted product %s", product_id)
