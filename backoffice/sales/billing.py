"""
GST / Non-GST bill construction.

Tax percentages are applied to the pre-tax (taxable) value. They are stored
twice on a bill: as rupee amounts on the row and as percentages inside
``items['_meta']`` so the printed bill can show the rates that produced them.
"""
import logging
from dataclasses import dataclass, field
from decimal import Decimal, ROUND_HALF_UP

from backoffice.core.utils import next_document_number, shop_now
from .models import Bill

logger = logging.getLogger(__name__)

DEFAULT_HSN_CODE = '7113'
BILL_TYPES = ('GST', 'Non-GST')
TWO_PLACES = Decimal('0.01')


def money(value):
    return Decimal(str(value)).quantize(TWO_PLACES, rounding=ROUND_HALF_UP)


@dataclass(frozen=True)
class GstRates:
    cgst: Decimal = Decimal('9')
    sgst: Decimal = Decimal('9')
    igst: Decimal = Decimal('0')


@dataclass(frozen=True)
class TaxBreakdown:
    taxable_value: Decimal
    cgst: Decimal
    sgst: Decimal
    igst: Decimal

    @property
    def total_tax(self):
        return self.cgst + self.sgst + self.igst

    @property
    def total_amount(self):
        return self.taxable_value + self.total_tax


@dataclass(frozen=True)
class BillLine:
    name: str
    quantity: int
    price: Decimal
    product_id: int = None
    sku: str = None
    hsn_code: str = DEFAULT_HSN_CODE

    @property
    def total(self):
        return money(self.price * self.quantity)

    def to_json(self):
        return {
            'product_id': self.product_id,
            'name': self.name,
            'sku': self.sku,
            'quantity': self.quantity,
            'price': str(money(self.price)),
            'total': str(self.total),
            'hsn_code': self.hsn_code,
        }


@dataclass
class BillDetails:
    """Customer and GST metadata supplied when a bill is raised"""
    customer_address: str = None
    customer_state: str = None
    customer_gstin: str = None
    transport_mode: str = None
    vehicle_no: str = None
    place_of_supply: str = None
    hsn_code: str = DEFAULT_HSN_CODE
    is_taxable: bool = None
    rates: GstRates = field(default_factory=GstRates)
    date_of_supply: object = None
    time_of_supply: str = None

    @classmethod
    def from_validated(cls, data):
        """Build from BillDetailsSerializer.validated_data"""
        data = dict(data or {})
        supply = data.pop('supply_date_time', None)
        defaults = GstRates()
        cgst = data.pop('cgst_percentage', None)
        sgst = data.pop('sgst_percentage', None)
        igst = data.pop('igst_percentage', None)
        rates = GstRates(
            cgst=defaults.cgst if cgst is None else cgst,
            sgst=defaults.sgst if sgst is None else sgst,
            igst=defaults.igst if igst is None else igst,
        )
        details = cls(rates=rates, **data)
        if supply is not None:
            local = supply.astimezone(shop_now().tzinfo)
            details.date_of_supply = details.date_of_supply or local.date()
            details.time_of_supply = details.time_of_supply or local.strftime('%H:%M')
        if not details.hsn_code:
            details.hsn_code = DEFAULT_HSN_CODE
        return details

    @classmethod
    def from_bill(cls, bill, **overrides):
        """Current metadata of a saved bill with ``overrides`` applied"""
        meta = bill.meta
        data = {
            'customer_address': bill.customer_address,
            'customer_state': bill.customer_state,
            'customer_gstin': bill.customer_gstin,
            'transport_mode': bill.transport_mode,
            'vehicle_no': bill.vehicle_no,
            'place_of_supply': bill.place_of_supply,
            'hsn_code': meta.get('hsn_code') or DEFAULT_HSN_CODE,
            'is_taxable': bill.is_taxable,
            'cgst_percentage': meta.get('cgst_percentage'),
            'sgst_percentage': meta.get('sgst_percentage'),
            'igst_percentage': meta.get('igst_percentage'),
            'date_of_supply': bill.date_of_supply,
            'time_of_supply': bill.time_of_supply,
        }
        if overrides.get('supply_date_time') is not None:
            data['date_of_supply'] = None
            data['time_of_supply'] = None
        data.update(overrides)
        return cls.from_validated(data)

    def taxable_for(self, bill_type):
        # Non-GST bills never carry tax
        if bill_type != 'GST':
            return False
        return True if self.is_taxable is None else self.is_taxable

    def meta(self):
        return {
            'date_of_supply': self.date_of_supply.isoformat() if self.date_of_supply else None,
            'time_of_supply': self.time_of_supply,
            'cgst_percentage': float(self.rates.cgst),
            'sgst_percentage': float(self.rates.sgst),
            'igst_percentage': float(self.rates.igst),
            'hsn_code': self.hsn_code,
        }


def compute_tax(taxable_value, rates, is_taxable):
    """Tax amounts for a pre-tax value; all zero when the bill is not taxable"""
    taxable_value = money(taxable_value)
    if not is_taxable:
        zero = Decimal('0.00')
        return TaxBreakdown(taxable_value, zero, zero, zero)
    hundred = Decimal('100')
    return TaxBreakdown(
        taxable_value=taxable_value,
        cgst=money(taxable_value * Decimal(str(rates.cgst)) / hundred),
        sgst=money(taxable_value * Decimal(str(rates.sgst)) / hundred),
        igst=money(taxable_value * Decimal(str(rates.igst)) / hundred),
    )


def build_bill_items(lines, details):
    return {
        'lines': [line.to_json() for line in lines],
        '_meta': details.meta(),
    }


def build_bill(bill_type, customer_name, lines, details, user=None, source_reference=None, taxable_value=None):
    """
    Assemble an unsaved Bill. ``taxable_value`` defaults to the sum of the
    line totals. The bill number is left empty for the caller to allocate.
    """
    if bill_type not in BILL_TYPES:
        raise ValueError(f"bill_type must be one of {', '.join(BILL_TYPES)}")
    if taxable_value is None:
        taxable_value = sum((line.total for line in lines), Decimal('0.00'))
    is_taxable = details.taxable_for(bill_type)
    tax = compute_tax(taxable_value, details.rates, is_taxable)

    return Bill(
        bill_type=bill_type,
        date=shop_now().date(),
        date_of_supply=details.date_of_supply,
        time_of_supply=details.time_of_supply,
        customer_name=customer_name,
        customer_address=details.customer_address,
        customer_state=details.customer_state,
        customer_gstin=details.customer_gstin,
        items=build_bill_items(lines, details),
        taxable_amount=tax.taxable_value,
        cgst=tax.cgst,
        sgst=tax.sgst,
        igst=tax.igst,
        total_amount=tax.total_amount,
        hsn_codes={'codes': [details.hsn_code]},
        transport_mode=details.transport_mode,
        vehicle_no=details.vehicle_no,
        place_of_supply=details.place_of_supply,
        is_taxable=is_taxable,
        source_reference=source_reference,
        created_by=user,
        updated_by=user,
    )


def create_bill(bill_type, customer_name, lines, details, user=None, source_reference=None, taxable_value=None):
    bill = build_bill(bill_type, customer_name, lines, details, user=user,
                      source_reference=source_reference, taxable_value=taxable_value)
    bill.bill_number = next_document_number('BILL')
    bill.save()
    logger.info(f"Bill {bill.bill_number} created for {customer_name} (type={bill_type}, total={bill.total_amount})")
    return bill


def recompute_bill(bill, details):
    """
    Apply edited customer/GST metadata to an existing bill. Line items stay as
    they are; tax is recomputed from the stored taxable amount.
    """
    is_taxable = details.taxable_for(bill.bill_type)
    tax = compute_tax(bill.taxable_amount, details.rates, is_taxable)
    items = dict(bill.items or {})
    items['_meta'] = details.meta()

    bill.items = items
    bill.is_taxable = is_taxable
    bill.cgst = tax.cgst
    bill.sgst = tax.sgst
    bill.igst = tax.igst
    bill.total_amount = tax.total_amount
    bill.hsn_codes = {'codes': [details.hsn_code]}
    bill.date_of_supply = details.date_of_supply
    bill.time_of_supply = details.time_of_supply
    for attr in ('customer_address', 'customer_state', 'customer_gstin',
                 'transport_mode', 'vehicle_no', 'place_of_supply'):
        setattr(bill, attr, getattr(details, attr))
    return bill
