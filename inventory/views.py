import json
import logging
from functools import wraps

from django.conf import settings
from django.db import IntegrityError, transaction
from django.http import JsonResponse
from django.shortcuts import get_object_or_404
from django.utils.crypto import constant_time_compare
from django.views.decorators.http import require_GET, require_http_methods, require_POST

from inventory.exceptions import AuthError, SyncAlreadyRunning
from inventory.models import Product, SyncLog
from inventory.sync import get_marketplace_clients, run_inventory_sync
from inventory.transforms import transform_product_payload, validate_product_payload, validate_quantity

logger = logging.getLogger(__name__)


def api_login_required(view):
    @wraps(view)
    def wrapper(request, *args, **kwargs):
        if not request.user.is_authenticated:
            return JsonResponse({'error': 'Not authorized'}, status=401)
        return view(request, *args, **kwargs)
    return wrapper


def _read_json(request):
    try:
        return json.loads(request.body or b'{}')
    except ValueError:
        return None


def _sync_response(trigger):
    try:
        result = run_inventory_sync()
    except SyncAlreadyRunning as exc:
        return JsonResponse({'success': False, 'error': str(exc)}, status=409)
    except Exception:
        logger.exception("Error in %s sync", trigger)
        return JsonResponse({'success': False, 'error': 'Sync failed'}, status=500)
    return JsonResponse(result.to_dict())


@require_http_methods(['GET', 'POST'])
@api_login_required
def product_list(request):
    if request.method == 'POST':
        return _create_product(request)

    products = [p.to_dict() for p in Product.objects.order_by('sku')]
    last_log = SyncLog.objects.filter(status=SyncLog.STATUS_SUCCESS).order_by('-created_at').first()
    return JsonResponse({
        'products': products,
        'last_sync': last_log.created_at.isoformat() if last_log else None,
    })


def _create_product(request):
    raw = _read_json(request)
    is_valid, reason = validate_product_payload(raw)
    if not is_valid:
        return JsonResponse({'error': reason}, status=400)

    data = transform_product_payload(raw)
    try:
        with transaction.atomic():
            product = Product.objects.create(**data)
    except IntegrityError:
        return JsonResponse({'error': f"SKU {data['sku']} already exists"}, status=400)

    logger.info("Created product %s", product.sku)
    return JsonResponse({'product': product.to_dict()}, status=201)


@require_http_methods(['PUT', 'DELETE'])
@api_login_required
def product_detail(request, pk):
    product = get_object_or_404(Product, pk=pk)

    if request.method == 'DELETE':
        product.delete()
        logger.info("Deleted product %s", product.sku)
        return JsonResponse({'success': True})

    raw = _read_json(request)
    qty = raw.get('warehouse_qty') if isinstance(raw, dict) else None
    is_valid, reason = validate_quantity(qty)
    if not is_valid:
        return JsonResponse({'error': reason}, status=400)

    product.warehouse_qty = qty
    product.save(update_fields=['warehouse_qty', 'updated_at'])
    logger.info("Warehouse quantity for %s set to %d", product.sku, qty)
    return JsonResponse({'product': product.to_dict()})


@require_POST
@api_login_required
def sync_now(request):
    return _sync_response('manual')


@require_GET
def cron_sync(request):
    expected = settings.CRON_SECRET
    provided = request.headers.get('Authorization', '')
    if not expected or not constant_time_compare(provided, f'Bearer {expected}'):
        return JsonResponse({'error': 'Not authorized'}, status=401)
    return _sync_response('scheduled')


@require_GET
def ml_callback(request):
    code = request.GET.get('code')
    if not code:
        return JsonResponse({'error': 'No code provided'}, status=400)

    _, mercadolibre = get_marketplace_clients()
    try:
        tokens = mercadolibre.exchange_code(code)
    except AuthError as exc:
        logger.error("Mercado Libre callback error: %s", exc)
        return JsonResponse({'error': 'Failed to exchange code', 'details': str(exc)}, status=500)

    return JsonResponse({
        'message': 'Authorization successful',
        'refresh_token': tokens.get('refresh_token'),
        'instructions': 'Store the refresh_token in the ML_REFRESH_TOKEN environment variable',
    })
