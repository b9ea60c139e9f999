"""
Request workflow engine.

A request moves Pending -> Approved | Rejected exactly once. The move is a
conditional UPDATE on the status column, taken inside the same database
transaction as every side effect of the decision, so a lost race or a failed
side effect leaves the request Pending and the inventory untouched.

Two kinds of work run after that transaction commits, each behind its own
error boundary:
- ledger entries generated by a decision (trader debit for a sale, artisan
  credits for new stock)
- image deletes on the media store
"""
import logging
from decimal import Decimal

from django.db import transaction
from django.db.models import F
from django.utils import timezone

from backoffice.catalog import media
from backoffice.catalog.models import LongSetProduct, LongSetProductPart, Product
from backoffice.catalog.utils import current_low_stock_threshold
from backoffice.core.exceptions import DuplicateSku, InsufficientStock, RequestAlreadyDecided, RequestNotFound
from backoffice.core.permissions import is_admin_user, require
from backoffice.core.utils import create_audit_log, next_document_number
from backoffice.khata.ledger import BOOKS, find_approved_karigar, record_transaction
from backoffice.khata.models import ApprovalStatus, Karigar
from backoffice.notifications.dispatcher import notify_admins, notify_user
from backoffice.sales.billing import BillDetails, BillLine, create_bill
from backoffice.sales.models import Transaction
from .models import ProductRequest, ProductRequestDetails, SalesRequest, SalesRequestItem

logger = logging.getLogger(__name__)

REQUEST_ID_PREFIX = 'PR'
DECISIONS = (ApprovalStatus.APPROVED, ApprovalStatus.REJECTED)

DETAIL_FIELDS = (
    'name', 'sku', 'description', 'price', 'cost_price', 'stock', 'stock_adjustment',
    'category', 'material', 'supplier', 'image_url',
)
PRODUCT_FIELDS = (
    'name', 'sku', 'description', 'price', 'cost_price', 'stock',
    'category', 'material', 'supplier', 'image_url',
)


# ==================== SUBMISSION ====================

def submit_product_request(user, request_type, product=None, details=None, image=None,
                           is_long_set=False, long_set_parts=None):
    """
    Create a Pending product request and tell the admins about it.

    An uploaded ``image`` replaces ``details['image_url']``. Add requests
    without an image get the placeholder; edit requests without one keep the
    product's current image.
    """
    require(user, 'requests.submit')
    if request_type not in dict(ProductRequest.REQUEST_TYPE_CHOICES):
        raise ValueError(f"Invalid request type: {request_type}")
    if request_type in (ProductRequest.TYPE_EDIT, ProductRequest.TYPE_DELETE) and product is None:
        raise ValueError(f"A product is required for {request_type} requests")
    if request_type in (ProductRequest.TYPE_ADD, ProductRequest.TYPE_EDIT) and not details:
        raise ValueError(f"Details are required for {request_type} requests")

    details = dict(details or {})
    if request_type != ProductRequest.TYPE_DELETE:
        if image:
            details['image_url'] = media.upload_image(image)
        elif not details.get('image_url'):
            if request_type == ProductRequest.TYPE_ADD:
                details['image_url'] = media.placeholder_url()
            else:
                details['image_url'] = product.image_url or media.placeholder_url()

    if request_type == ProductRequest.TYPE_DELETE:
        is_long_set = product.is_long_set

    with transaction.atomic():
        product_request = ProductRequest.objects.create(
            request_id=next_document_number(REQUEST_ID_PREFIX),
            request_type=request_type,
            product=product,
            is_long_set=bool(is_long_set),
            admin_action=is_admin_user(user),
            requester=user,
        )
        if request_type != ProductRequest.TYPE_DELETE:
            ProductRequestDetails.objects.create(
                request=product_request,
                long_set_parts=list(long_set_parts) if is_long_set and long_set_parts else None,
                **{name: details[name] for name in DETAIL_FIELDS if name in details}
            )

    type_name = request_type.capitalize()
    product_name = details.get('name') or (product.name if product else 'Unknown product')
    if product_request.admin_action:
        message = (f"Admin {user.username} has requested to {request_type} product \"{product_name}\" "
                   f"({product_request.request_id}). This requires approval.")
    else:
        message = (f"New product {request_type} request ({product_request.request_id}) created by "
                   f"{user.username} for product \"{product_name}\".")
    notify_admins(f"New Product {type_name} Request", message, 'product_request',
                  exclude=user if product_request.admin_action else None)

    logger.info(f"Product {request_type} request {product_request.request_id} submitted by {user.username}")
    return product_request


def submit_sales_request(user, customer, items, vyapari=None):
    """
    Create a Pending sales request.

    ``items`` is a list of {'product': Product, 'quantity': int, 'price': Decimal | None};
    the price defaults to the product's current price. Product fields are
    snapshotted onto each line.
    """
    require(user, 'requests.submit')
    if not items:
        raise ValueError("A sales request needs at least one item")

    for item in items:
        product = item['product']
        if item['quantity'] > product.stock:
            raise InsufficientStock(
                f"Insufficient stock for {product.name}: {product.stock} available, {item['quantity']} requested."
            )

    with transaction.atomic():
        sales_request = SalesRequest.objects.create(
            request_id=next_document_number(REQUEST_ID_PREFIX),
            customer=customer,
            vyapari=vyapari,
            requester=user,
        )
        total_value = Decimal('0.00')
        for item in items:
            product = item['product']
            price = item.get('price')
            if price is None:
                price = product.price
            line = SalesRequestItem.objects.create(
                sales_request=sales_request,
                product=product,
                product_name=product.name,
                sku=product.sku,
                category=product.category,
                material=product.material,
                image_url=product.image_url,
                quantity=item['quantity'],
                price=price,
            )
            total_value += line.total
        sales_request.total_value = total_value
        sales_request.save(update_fields=['total_value', 'updated_at'])

    notify_admins(
        'New Sales Request',
        f"New sales request ({sales_request.request_id}) created by {user.username} for "
        f"{customer} worth ₹{total_value}.",
        'sales_request',
        exclude=user if is_admin_user(user) else None,
    )
    logger.info(f"Sales request {sales_request.request_id} submitted by {user.username} ({total_value})")
    return sales_request


# ==================== DECISION HELPERS ====================

def _claim(model, pk, decision, user):
    """
    Compare-and-swap Pending -> decision. Must run inside the caller's
    transaction so a later failure rolls the status back as well.
    """
    if decision not in DECISIONS:
        raise ValueError(f"Decision must be one of {', '.join(DECISIONS)}")
    changed = model.objects.filter(pk=pk, status=ApprovalStatus.PENDING).update(
        status=decision,
        decided_by=user,
        decided_at=timezone.now(),
        updated_at=timezone.now(),
    )
    if changed:
        return model.objects.get(pk=pk)
    current = model.objects.filter(pk=pk).values_list('status', flat=True).first()
    if current is None:
        raise RequestNotFound()
    raise RequestAlreadyDecided(f"Request has already been {current.lower()}.")


def _delete_image_after_commit(url):
    if media.is_placeholder(url):
        return
    transaction.on_commit(lambda: media.delete_image(url))


def _post_ledger_entries(entries, source):
    """
    Write auto-approved ledger transactions outside the decision transaction.
    Each entry is a (book, party, amount, description, user) tuple.
    """
    posted = []
    for book, party, amount, description, user in entries:
        try:
            with transaction.atomic():
                posted.append(record_transaction(book, party, amount, description, user, auto_approve=True))
        except Exception as e:
            logger.error(
                f"Failed to post {book.kind} ledger entry for {source} ({amount}): {str(e)}",
                exc_info=True
            )
    return posted


def _merge_fields(details):
    """Non-null proposed values to copy onto a product"""
    values = {}
    for name in PRODUCT_FIELDS:
        value = getattr(details, name)
        if value is None:
            continue
        if name in ('name', 'sku', 'category', 'material') and value == '':
            continue
        values[name] = value
    return values


def _replace_parts(long_set, parts):
    long_set.parts.all().delete()
    LongSetProductPart.objects.bulk_create([
        LongSetProductPart(
            long_set_product=long_set,
            position=position,
            part_name=part['part_name'],
            part_description=part.get('part_description'),
            cost_price=Decimal(str(part['cost_price'])) if part.get('cost_price') not in (None, '') else None,
            karigar_id=part.get('karigar_id'),
        )
        for position, part in enumerate(parts or [])
    ])


def _part_entries(parts, stock, product_name, user, previous=None):
    """
    Artisan credits for long-set parts: cost of the part times the units in
    stock. With ``previous`` parts given, only parts whose artisan or cost
    changed at the same position are charged.
    """
    book = BOOKS['karigar']
    previous = previous or []
    entries = []
    for position, part in enumerate(parts or []):
        karigar_id = part.get('karigar_id')
        if not karigar_id:
            continue
        cost = Decimal(str(part.get('cost_price') or 0))
        if position < len(previous):
            old = previous[position]
            if old.karigar_id == karigar_id and (old.cost_price or Decimal('0')) == cost:
                continue
        karigar = Karigar.objects.filter(pk=karigar_id, approval_status=ApprovalStatus.APPROVED).first()
        amount = cost * (stock or 0)
        if karigar and amount > 0:
            entries.append((
                book, karigar, amount,
                f"Long set product part: {part['part_name']} for {product_name} ({stock} units)",
                user,
            ))
    return entries


# ==================== PRODUCT DECISIONS ====================

def _ensure_sku_free(sku, product=None):
    taken = Product.objects.filter(sku__iexact=sku)
    if product is not None:
        taken = taken.exclude(pk=product.pk)
    if taken.exists():
        raise DuplicateSku(f"A product with SKU {sku} already exists.")


def _approve_add(product_request, user):
    details = product_request.details
    fields = _merge_fields(details)
    fields.setdefault('description', '')
    fields.setdefault('category', '')
    fields.setdefault('material', '')
    fields.setdefault('image_url', media.placeholder_url())
    _ensure_sku_free(fields.get('sku', ''))
    fields['low_stock_threshold'] = current_low_stock_threshold()
    product = Product.objects.create(created_by=product_request.requester, **fields)
    ProductRequest.objects.filter(pk=product_request.pk).update(product=product)

    entries = []
    if product_request.is_long_set:
        long_set = LongSetProduct.objects.create(product=product)
        _replace_parts(long_set, details.long_set_parts)
        entries += _part_entries(details.long_set_parts, product.stock, product.name, user)
    elif details.supplier:
        karigar = find_approved_karigar(details.supplier)
        unit_cost = details.cost_price or details.price or Decimal('0')
        amount = unit_cost * (details.stock or 0)
        if karigar and amount > 0:
            entries.append((BOOKS['karigar'], karigar, amount, f"New product added: {product.name}", user))
    logger.info(f"Product {product.sku} created from request {product_request.request_id}")
    return product, entries


def _approve_edit(product_request, user):
    details = product_request.details
    product = Product.objects.select_for_update().filter(pk=product_request.product_id).first()
    if product is None:
        raise RequestNotFound("The product for this request no longer exists.")

    old_image = product.image_url
    old_supplier = product.supplier
    old_cost = product.cost_price
    fields = _merge_fields(details)
    if 'sku' in fields:
        _ensure_sku_free(fields['sku'], product=product)
    for name, value in fields.items():
        setattr(product, name, value)
    product.save()

    if old_image and product.image_url != old_image:
        _delete_image_after_commit(old_image)

    entries = []
    if product_request.is_long_set:
        long_set, _ = LongSetProduct.objects.get_or_create(product=product)
        previous = list(long_set.parts.all())
        entries += _part_entries(details.long_set_parts, product.stock, product.name, user, previous=previous)
        _replace_parts(long_set, details.long_set_parts)

    adjustment = details.stock_adjustment or 0
    if details.supplier and (details.supplier != old_supplier or adjustment > 0):
        karigar = find_approved_karigar(details.supplier)
        unit_cost = details.cost_price if details.cost_price is not None else (old_cost or product.price or Decimal('0'))
        amount = unit_cost * adjustment
        if karigar and amount > 0:
            entries.append((BOOKS['karigar'], karigar, amount, f"Updated product: {product.name}", user))
    logger.info(f"Product {product.sku} updated from request {product_request.request_id}")
    return product, entries


def _approve_delete(product_request):
    product = Product.objects.select_for_update().filter(pk=product_request.product_id).first()
    if product is None:
        raise RequestNotFound("The product for this request no longer exists.")
    image_url = product.image_url
    sku = product.sku
    product.delete()
    _delete_image_after_commit(image_url)
    logger.info(f"Product {sku} deleted from request {product_request.request_id}")


def _reject_product_request(product_request):
    details = getattr(product_request, 'details', None)
    if details is None or not details.image_url:
        return
    if product_request.request_type == ProductRequest.TYPE_ADD:
        _delete_image_after_commit(details.image_url)
    elif product_request.request_type == ProductRequest.TYPE_EDIT:
        current = product_request.product.image_url if product_request.product else None
        # An unchanged image is still the product's live image
        if details.image_url != current:
            _delete_image_after_commit(details.image_url)


def _product_message(product_request):
    status = product_request.status
    message = (f"Your product {product_request.request_type} request ({product_request.request_id}) "
               f"has been {status.lower()}.")
    if status != ApprovalStatus.APPROVED:
        return message
    details = getattr(product_request, 'details', None)
    if product_request.request_type == ProductRequest.TYPE_ADD and details:
        message += f" Product \"{details.name}\" has been added to inventory."
        if product_request.is_long_set:
            message += " This long set product and its parts have been created."
    elif product_request.request_type == ProductRequest.TYPE_EDIT and product_request.product:
        message += f" Changes to product \"{product_request.product.name}\" have been applied."
    elif product_request.request_type == ProductRequest.TYPE_DELETE:
        message += " The product has been removed from inventory."
    return message


def decide_product_request(pk, decision, user, request=None):
    """
    Approve or reject a pending product request.

    Raises RequestNotFound, RequestAlreadyDecided, or PermissionDenied when
    the caller may not decide requests.
    """
    require(user, 'requests.decide')

    with transaction.atomic():
        product_request = _claim(ProductRequest, pk, decision, user)
        entries = []
        if decision == ApprovalStatus.APPROVED:
            if product_request.request_type == ProductRequest.TYPE_ADD:
                _, entries = _approve_add(product_request, user)
            elif product_request.request_type == ProductRequest.TYPE_EDIT:
                _, entries = _approve_edit(product_request, user)
            else:
                _approve_delete(product_request)
        else:
            _reject_product_request(product_request)

        product_request = (
            ProductRequest.objects.select_related('product', 'details', 'requester')
            .get(pk=product_request.pk)
        )
        notify_user(
            product_request.requester,
            f"Product Request {product_request.status}",
            _product_message(product_request),
            'status_update',
        )
        create_audit_log(
            request=request,
            user=user,
            action='request_approve' if decision == ApprovalStatus.APPROVED else 'request_reject',
            model_name='ProductRequest',
            object_id=product_request.pk,
            object_name=product_request.details.name if hasattr(product_request, 'details') else None,
            object_reference=product_request.request_id,
            changes={'request_type': product_request.request_type, 'status': product_request.status},
        )

    _post_ledger_entries(entries, product_request.request_id)
    logger.info(f"Product request {product_request.request_id} {decision.lower()} by {user.username}")
    return product_request


def purge_product_requests(user, request=None):
    """Delete every product request and the images only they reference"""
    require(user, 'requests.purge')
    with transaction.atomic():
        live_images = set(Product.objects.exclude(image_url='').values_list('image_url', flat=True))
        images = set(
            ProductRequestDetails.objects.exclude(image_url__isnull=True)
            .values_list('image_url', flat=True)
        )
        deleted, _ = ProductRequest.objects.all().delete()
        for url in images - live_images:
            _delete_image_after_commit(url)
    create_audit_log(
        request=request,
        user=user,
        action='request_purge',
        model_name='ProductRequest',
        object_id='*',
        changes={'deleted': deleted},
    )
    logger.warning(f"All product requests purged by {user.username} ({deleted} rows)")
    return deleted


# ==================== SALES DECISIONS ====================

def _decrement_stock(sales_request):
    """Take every line out of stock, or none of them"""
    lines = list(sales_request.items.order_by('product_id', 'id'))
    for line in lines:
        if line.product_id is None:
            raise InsufficientStock(f"{line.product_name} is no longer in the catalogue.")
    # Lock rows in a stable order
    list(Product.objects.select_for_update().filter(pk__in=[line.product_id for line in lines]).order_by('pk'))

    for line in lines:
        updated = Product.objects.filter(pk=line.product_id, stock__gte=line.quantity).update(
            stock=F('stock') - line.quantity,
            updated_at=timezone.now(),
        )
        if not updated:
            available = Product.objects.filter(pk=line.product_id).values_list('stock', flat=True).first()
            raise InsufficientStock(
                f"Insufficient stock for {line.product_name}: {available or 0} available, {line.quantity} requested."
            )


def _sale_snapshot(sales_request):
    """Item snapshot stored on the completed sale; prefers the live product"""
    snapshot = []
    for line in sales_request.items.select_related('product'):
        product = line.product
        snapshot.append({
            'product_id': line.product_id,
            'product_name': product.name if product else line.product_name,
            'sku': product.sku if product else line.sku,
            'category': (product.category if product else line.category) or None,
            'material': (product.material if product else line.material) or None,
            'image_url': (product.image_url if product else line.image_url) or None,
            'quantity': line.quantity,
            'price': str(line.price),
            'total': str(line.total),
        })
    return snapshot


def _sale_bill(sales_request, bill_type, bill_details, user):
    details = BillDetails.from_validated(bill_details)
    lines = [
        BillLine(
            name=line.product_name,
            quantity=line.quantity,
            price=line.price,
            product_id=line.product_id,
            sku=line.sku,
            hsn_code=details.hsn_code,
        )
        for line in sales_request.items.all()
    ]
    return create_bill(
        bill_type,
        sales_request.customer,
        lines,
        details,
        user=user,
        source_reference=sales_request.request_id,
        taxable_value=sales_request.total_value,
    )


def decide_sales_request(pk, decision, user, bill_type=None, bill_details=None, request=None):
    """
    Approve or reject a pending sales request.

    Approval takes the stock, records the completed sale (one Transaction per
    request id) and raises a bill when ``bill_type`` is given, all in one
    database transaction. A trader tied to the request is debited with the
    sale value afterwards.

    Returns (sales_request, bill or None).
    """
    require(user, 'requests.decide')

    bill = None
    with transaction.atomic():
        sales_request = _claim(SalesRequest, pk, decision, user)
        if decision == ApprovalStatus.APPROVED:
            _decrement_stock(sales_request)
            sale, created = Transaction.objects.get_or_create(
                order_id=sales_request.request_id,
                defaults={
                    'customer': sales_request.customer,
                    'total_amount': sales_request.total_value,
                    'items': _sale_snapshot(sales_request),
                    'bill_type': bill_type,
                    'user': sales_request.requester,
                    'approved_by': user,
                },
            )
            if not created:
                logger.warning(f"Transaction {sale.order_id} already existed; not recreated")
            if bill_type:
                bill = _sale_bill(sales_request, bill_type, bill_details, user)
                SalesRequest.objects.filter(pk=sales_request.pk).update(bill_type=bill_type)
            create_audit_log(
                request=request,
                user=user,
                action='stock_sale',
                model_name='SalesRequest',
                object_id=sales_request.pk,
                object_name=sales_request.customer,
                object_reference=sales_request.request_id,
                changes={'items': [
                    {'product_id': line.product_id, 'quantity': line.quantity}
                    for line in sales_request.items.all()
                ]},
            )

        sales_request = (
            SalesRequest.objects.select_related('vyapari', 'requester', 'decided_by')
            .prefetch_related('items').get(pk=sales_request.pk)
        )
        notify_user(
            sales_request.requester,
            f"Sales Request {sales_request.status}",
            f"Your sales request ({sales_request.request_id}) for {sales_request.customer} "
            f"has been {sales_request.status.lower()}.",
            'request_approved' if decision == ApprovalStatus.APPROVED else 'request_rejected',
        )
        create_audit_log(
            request=request,
            user=user,
            action='request_approve' if decision == ApprovalStatus.APPROVED else 'request_reject',
            model_name='SalesRequest',
            object_id=sales_request.pk,
            object_name=sales_request.customer,
            object_reference=sales_request.request_id,
            changes={'status': sales_request.status, 'bill': bill.bill_number if bill else None},
        )

    vyapari = sales_request.vyapari
    if decision == ApprovalStatus.APPROVED and vyapari is not None:
        if vyapari.is_approved:
            # Negative: the trader owes the shop
            _post_ledger_entries([(
                BOOKS['vyapari'], vyapari, -sales_request.total_value,
                f"Sale {sales_request.request_id} to {sales_request.customer}", user,
            )], sales_request.request_id)
        else:
            logger.warning(
                f"Vyapari {vyapari.pk} on {sales_request.request_id} is not approved; no ledger entry posted"
            )

    logger.info(f"Sales request {sales_request.request_id} {decision.lower()} by {user.username}")
    return sales_request, bill
