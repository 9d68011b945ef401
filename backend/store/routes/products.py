from functools import wraps
from hmac import compare_digest

from flask import Blueprint, current_app, jsonify, request

from store.errors import UnauthorizedError
from store.services import validators
from store.services.product_service import ProductService

products_bp = Blueprint('products', __name__)


def admin_required(view):
    """Require ``Authorization: Bearer <ADMIN_API_TOKEN>`` when a token is configured."""
    @wraps(view)
    def wrapper(*args, **kwargs):
        token = current_app.config.get('ADMIN_API_TOKEN')
        if token:
            header = request.headers.get('Authorization', '')
            scheme, _, supplied = header.partition(' ')
            if scheme.lower() != 'bearer' or not compare_digest(supplied.strip(), token):
                raise UnauthorizedError('No autorizado')
        return view(*args, **kwargs)
    return wrapper


def _query_params():
    """Query args as plain values, keeping repeated parameters as lists."""
    params = {}
    for key in request.args:
        values = request.args.getlist(key)
        params[key] = values if len(values) > 1 else values[0]
    return params


def _json_body():
    return request.get_json(silent=True)


# ========== Catalog ==========

@products_bp.route('/', methods=['GET'])
def get_products():
    """
    搜索产品

    Query Parameters:
    - productType: Anillo / Collar / Pulsera / Aros
    - category: 分类
    - minPrice / maxPrice: 价格区间
    - tags: 逗号分隔或重复参数（任一匹配）
    - sale: true 时只返回有折扣的产品
    - isActive: 只返回上架产品
    - sortBy: basePrice / name / category (默认按创建时间倒序)
    - sortOrder: asc / desc
    - page / perPage: 分页
    """
    validators.validate_catalog_params(request.args.to_dict(flat=False))
    return jsonify(ProductService.search_products(_query_params()))


@products_bp.route('/categories', methods=['GET'])
def get_categories():
    """获取所有分类及产品数量"""
    return jsonify(ProductService.get_categories())


@products_bp.route('/categories/<category_name>', methods=['GET'])
def get_category_products(category_name):
    result = ProductService.get_category_products(
        category_name,
        page=request.args.get('page'),
        per_page=request.args.get('perPage'),
    )
    return jsonify(result)


@products_bp.route('/<product_id>', methods=['GET'])
def get_product_detail(product_id):
    """获取产品详情（含相关产品）"""
    validators.validate_object_id(product_id)
    return jsonify(ProductService.get_product(product_id))


# ========== Admin ==========

@products_bp.route('/', methods=['POST'])
@admin_required
def create_product():
    payload = validators.validate_product_payload(_json_body())
    product = ProductService.create_product(payload)
    return jsonify({
        'message': 'Producto registrado correctamente',
        'product': product,
    }), 201


@products_bp.route('/<product_id>', methods=['PATCH'])
@admin_required
def update_product(product_id):
    validators.validate_object_id(product_id)
    payload = validators.validate_product_payload(_json_body(), partial=True)
    product = ProductService.update_product(product_id, payload)
    return jsonify({
        'message': 'Producto actualizado correctamente',
        'product': product,
    })


@products_bp.route('/<product_id>', methods=['DELETE'])
@admin_required
def delete_product(product_id):
    validators.validate_object_id(product_id)
    ProductService.delete_product(product_id)
    return jsonify({'message': 'Producto eliminado correctamente'})


@products_bp.route('/stock/<product_id>', methods=['PATCH'])
@admin_required
def update_product_stock(product_id):
    validators.validate_object_id(product_id)
    stock = validators.validate_stock_payload(_json_body())
    product = ProductService.update_stock(product_id, stock)
    return jsonify({
        'message': 'Stock actualizado exitosamente',
        'product': product,
    })


@products_bp.route('/discounts/<product_id>', methods=['PATCH'])
@admin_required
def set_product_discount(product_id):
    validators.validate_object_id(product_id)
    discount = validators.validate_discount_payload(_json_body())
    product = ProductService.set_discount(product_id, discount)
    return jsonify({
        'message': 'Descuento asignado exitosamente',
        'product': product,
    })


@products_bp.route('/status/<product_id>', methods=['PATCH'])
@admin_required
def update_product_status(product_id):
    validators.validate_object_id(product_id)
    is_active = validators.validate_status_payload(_json_body())
    product = ProductService.update_status(product_id, is_active)
    return jsonify({
        'message': f"Producto {'activo' if is_active else 'inactivo'}",
        'product': product,
    })
