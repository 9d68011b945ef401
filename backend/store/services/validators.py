"""
Request validation for the product endpoints.

These checks only cover presence and type. Normalization (defaults, enum
canonicalization, tag splitting) stays in ``product_filters``.
"""

from datetime import datetime
from typing import Any, Dict, List, Mapping, Optional
from urllib.parse import urlparse

from bson import ObjectId

from store.errors import ValidationError
from store.models.product import ATTRIBUTE_VARIANTS, ProductTypes, variant_for

TRUE_VALUES = {'true', '1'}
FALSE_VALUES = {'false', '0'}
SORT_BY_VALUES = {'basePrice', 'name', 'category'}
SORT_ORDER_VALUES = {'asc', 'desc'}

Errors = List[Dict[str, str]]


def _error(errors: Errors, field: str, message: str) -> None:
    errors.append({'field': field, 'message': message})


def _raise_if_any(errors: Errors) -> None:
    if errors:
        raise ValidationError(errors)


def is_boolean(value: Any) -> bool:
    if isinstance(value, bool):
        return True
    if isinstance(value, int):
        return value in (0, 1)
    return isinstance(value, str) and value.strip().lower() in TRUE_VALUES | FALSE_VALUES


def to_boolean(value: Any) -> bool:
    if isinstance(value, str):
        return value.strip().lower() in TRUE_VALUES
    return bool(value)


def _is_non_negative_int(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    if isinstance(value, int):
        return value >= 0
    if isinstance(value, str):
        raw = value.strip()
        return raw.isdigit() or (raw.startswith('+') and raw[1:].isdigit())
    return False


def _is_non_negative_number(value: Any) -> bool:
    if isinstance(value, bool):
        return False
    try:
        return float(value) >= 0
    except (TypeError, ValueError):
        return False


def _is_non_empty_string(value: Any) -> bool:
    return isinstance(value, str) and value.strip() != ''


def _is_url(value: Any) -> bool:
    if not isinstance(value, str):
        return False
    parsed = urlparse(value.strip())
    return parsed.scheme in ('http', 'https') and '.' in (parsed.netloc or '')


def parse_iso8601(value: Any) -> Optional[datetime]:
    if not isinstance(value, str) or not value.strip():
        return None
    raw = value.strip()
    if raw.endswith('Z'):
        raw = raw[:-1] + '+00:00'
    try:
        return datetime.fromisoformat(raw)
    except ValueError:
        return None


def validate_object_id(product_id: str) -> str:
    if not product_id or not ObjectId.is_valid(product_id):
        raise ValidationError.for_field('productId', 'ID del producto inválido')
    return product_id


def validate_catalog_params(args: Mapping[str, Any]) -> None:
    """Query checks for GET /products. ``args`` maps names to lists of values."""
    errors: Errors = []

    def values(name: str) -> Optional[List[str]]:
        raw = args.get(name)
        if raw is None:
            return None
        return list(raw) if isinstance(raw, (list, tuple)) else [raw]

    product_type = values('productType')
    if product_type is not None and product_type[0] not in ProductTypes.ALL:
        _error(errors, 'productType', 'Tipo de producto inválido')

    tags = values('tags')
    if tags is not None:
        # ?tags=gold,silver or ?tags=gold&tags=silver
        entries = tags[0].split(',') if len(tags) == 1 else tags
        if not all(isinstance(tag, str) and tag.strip() for tag in entries):
            _error(errors, 'tags', 'tags must be a comma-separated string or an array of strings')

    category = values('category')
    if category is not None and not category[0].strip():
        _error(errors, 'category', 'La categoría no puede ir vacía')

    sale = values('sale')
    if sale is not None:
        if not sale[0]:
            _error(errors, 'sale', 'El filtro por descuento no puede ir vacío')
        elif not is_boolean(sale[0]):
            _error(errors, 'sale', 'El filtro por descuento debe ser boolean')

    for field, message in (('minPrice', 'El precio mínimo no puede ser menor a cero'),
                           ('maxPrice', 'El precio máximo no puede ser menor a cero')):
        price = values(field)
        if price is not None and not _is_non_negative_int(price[0]):
            _error(errors, field, message)

    is_active = values('isActive')
    if is_active is not None:
        if not is_active[0]:
            _error(errors, 'isActive', 'El estado del producto no puede ir vacío')
        if not is_boolean(is_active[0]):
            _error(errors, 'isActive', 'El estado debe ser verdadero o falso')

    sort_by = values('sortBy')
    if sort_by is not None and sort_by[0] not in SORT_BY_VALUES:
        _error(errors, 'sortBy', 'The sort criteria selected does not exist')

    sort_order = values('sortOrder')
    if sort_order is not None and sort_order[0] not in SORT_ORDER_VALUES:
        _error(errors, 'sortOrder', "sort order must be either 'asc' or 'desc'")

    _raise_if_any(errors)


def validate_attributes(attributes: Any, product_type: Optional[str], required: bool,
                        errors: Errors) -> None:
    """Check ``attributes`` against the variant of ``product_type``."""
    if not attributes:
        if required:
            _error(errors, 'attributes', 'Los atributos del producto son requeridos')
        return
    if not isinstance(attributes, dict):
        _error(errors, 'attributes', 'Los atributos deben ser un objeto')
        return
    if not product_type:
        # PATCH without a type change; rebuilt against the stored type later
        return

    variant = variant_for(product_type)
    if variant is None:
        _error(errors, 'attributes', 'Tipo de producto inválido')
        return

    unknown = [key for key in attributes if key not in variant.keys]
    if unknown:
        _error(errors, 'attributes',
               f"Atributos inválidos para {product_type}: {', '.join(unknown)}")
        return

    for key in variant.required:
        value = attributes.get(key)
        if required and not _is_non_empty_string(value):
            _error(errors, f'attributes.{key}', f'El atributo {key} es requerido')
        elif value is not None and not _is_non_empty_string(value):
            _error(errors, f'attributes.{key}', f'El atributo {key} debe ser un texto válido')

    for key in variant.optional:
        if key not in attributes:
            continue
        value = attributes[key]
        if key in variant.numeric:
            if isinstance(value, bool) or not isinstance(value, (int, float)) or value <= 0:
                _error(errors, f'attributes.{key}', f'El atributo {key} debe ser un número mayor a 0')
        elif not _is_non_empty_string(value):
            _error(errors, f'attributes.{key}', f'El atributo {key} debe ser un texto válido')


def validate_product_payload(body: Any, partial: bool = False) -> Dict[str, Any]:
    """Validate a create (``partial=False``) or update payload."""
    if not isinstance(body, dict):
        raise ValidationError.for_field('body', 'El cuerpo de la petición debe ser un objeto JSON')

    errors: Errors = []

    def present(field: str) -> bool:
        return field in body and body[field] is not None

    for field, message in (('name', 'El nombre no puede ir vacío'),
                           ('description', 'La descripción no puede ir vacía'),
                           ('category', 'La categoría no puede ir vacía')):
        if present(field) or not partial:
            if not _is_non_empty_string(body.get(field)):
                _error(errors, field, message)

    if present('basePrice') or not partial:
        if not _is_non_negative_number(body.get('basePrice')):
            _error(errors, 'basePrice', 'El precio debe ser un número mayor o igual a 0')

    if present('productType') or not partial:
        if body.get('productType') not in ProductTypes.ALL:
            _error(errors, 'productType', 'Tipo de producto inválido')

    if present('images') or not partial:
        images = body.get('images')
        if not isinstance(images, list) or not 3 <= len(images) <= 10:
            _error(errors, 'images', 'Debes agregar entre 3 y 10 imágenes')
        elif not all(_is_url(image) for image in images):
            _error(errors, 'images', 'Cada imagen debe ser una URL válida')

    if present('stock') or not partial:
        stock = body.get('stock')
        if isinstance(stock, bool) or not isinstance(stock, int) or stock < 0:
            _error(errors, 'stock', 'El stock debe ser un número entero mayor o igual a 0')

    if present('tags') or not partial:
        tags = body.get('tags')
        if not isinstance(tags, list) or not 1 <= len(tags) <= 10:
            _error(errors, 'tags', 'Debes agregar entre 1 y 10 tags')
        elif not all(_is_non_empty_string(tag) for tag in tags):
            _error(errors, 'tags', 'Los tags no pueden estar vacíos')

    if 'isActive' in body and not isinstance(body['isActive'], bool):
        _error(errors, 'isActive', 'El estado debe ser verdadero o falso')

    product_type = body.get('productType')
    if product_type in ATTRIBUTE_VARIANTS or partial:
        validate_attributes(body.get('attributes'), product_type, not partial, errors)

    _raise_if_any(errors)

    cleaned = dict(body)
    for field in ('name', 'description', 'category'):
        if isinstance(cleaned.get(field), str):
            cleaned[field] = cleaned[field].strip()
    if isinstance(cleaned.get('tags'), list):
        cleaned['tags'] = [tag.strip() for tag in cleaned['tags']]
    if isinstance(cleaned.get('basePrice'), str):
        cleaned['basePrice'] = float(cleaned['basePrice'])
    return cleaned


def validate_discount_payload(body: Any) -> Dict[str, Any]:
    if not isinstance(body, dict):
        raise ValidationError.for_field('body', 'El cuerpo de la petición debe ser un objeto JSON')

    errors: Errors = []
    percentage = body.get('percentage')
    if percentage is None or percentage == '':
        _error(errors, 'percentage', 'El porcentaje no puede ir vacío')
    elif not _is_non_negative_int(percentage) or int(percentage) > 100:
        _error(errors, 'percentage', 'El porcentaje debe ser un número del 0 al 100')

    is_active = body.get('isActive')
    if is_active is None or is_active == '':
        _error(errors, 'isActive', 'El estado del descuento no puede ir vacío')
    elif not is_boolean(is_active):
        _error(errors, 'isActive', 'El estado del descuento debe ser boolean')

    start = end = None
    if body.get('startDate'):
        start = parse_iso8601(body['startDate'])
        if start is None:
            _error(errors, 'startDate', 'La fecha de inicio debe ser una fecha válida')
    if body.get('endDate'):
        end = parse_iso8601(body['endDate'])
        if end is None:
            _error(errors, 'endDate', 'La fecha de fin debe ser una fecha válida')
    if start and end:
        try:
            if start > end:
                _error(errors, 'endDate', 'La fecha de fin debe ser posterior a la fecha de inicio')
        except TypeError:
            _error(errors, 'endDate', 'Las fechas deben incluir la misma información de zona horaria')

    _raise_if_any(errors)

    discount = {
        'percentage': int(percentage),
        'isActive': to_boolean(is_active),
    }
    if start:
        discount['startDate'] = start
    if end:
        discount['endDate'] = end
    return discount


def validate_status_payload(body: Any) -> bool:
    value = body.get('isActive') if isinstance(body, dict) else None
    if value is None or value == '':
        raise ValidationError.for_field('isActive', 'El estado del producto no puede ir vacío')
    if not is_boolean(value):
        raise ValidationError.for_field('isActive', 'El estado del producto debe ser boolean')
    return to_boolean(value)


def validate_stock_payload(body: Any) -> int:
    value = body.get('stock') if isinstance(body, dict) else None
    if value is None or value == '':
        raise ValidationError.for_field('stock', 'El stock del producto no puede ir vacío')
    if not _is_non_negative_int(value):
        raise ValidationError.for_field('stock', 'El stock debe ser un número entero mayor o igual a 0')
    return int(value)
