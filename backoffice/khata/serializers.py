from decimal import Decimal

from rest_framework import serializers

from .models import (
    ApprovalStatus, LedgerPayment,
    Vyapari, VyapariTransaction, VyapariPayment,
    Karigar, KarigarTransaction, KarigarPayment,
)

PARTY_READ_ONLY = ['status', 'approval_status', 'is_approved', 'created_by_name', 'approved_by_name',
                   'approved_at', 'created_at', 'updated_at']


class PartySerializer(serializers.ModelSerializer):
    is_approved = serializers.BooleanField(read_only=True)
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)
    approved_by_name = serializers.CharField(source='approved_by.username', read_only=True, default=None)

    def validate_name(self, value):
        value = value.strip()
        if not value:
            raise serializers.ValidationError('Name is required')
        return value


class VyapariSerializer(PartySerializer):
    class Meta:
        model = Vyapari
        fields = ['id', 'name', 'phone', 'email', 'address'] + PARTY_READ_ONLY
        read_only_fields = PARTY_READ_ONLY


class KarigarSerializer(PartySerializer):
    class Meta:
        model = Karigar
        fields = ['id', 'name', 'phone', 'email', 'address', 'specialization'] + PARTY_READ_ONLY
        read_only_fields = PARTY_READ_ONLY


class PartyStatusSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[('Active', 'Active'), ('Inactive', 'Inactive')])


class LedgerItemSerializer(serializers.Serializer):
    """One line of goods attached to a ledger transaction"""
    name = serializers.CharField(max_length=200)
    quantity = serializers.DecimalField(max_digits=10, decimal_places=3, required=False, default=Decimal('1'))
    weight = serializers.DecimalField(max_digits=10, decimal_places=3, required=False, allow_null=True, default=None)
    rate = serializers.DecimalField(max_digits=12, decimal_places=2, required=False, allow_null=True, default=None)
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, required=False, allow_null=True, default=None)

    def to_internal_value(self, data):
        value = super().to_internal_value(data)
        # JSONField storage
        return {key: (str(v) if isinstance(v, Decimal) else v) for key, v in value.items()}


class TransactionInputSerializer(serializers.Serializer):
    description = serializers.CharField()
    amount = serializers.DecimalField(max_digits=14, decimal_places=2)
    items = LedgerItemSerializer(many=True, required=False)


class PaymentInputSerializer(serializers.Serializer):
    amount = serializers.DecimalField(max_digits=14, decimal_places=2, min_value=Decimal('0.01'))
    payment_mode = serializers.ChoiceField(choices=LedgerPayment.PAYMENT_MODE_CHOICES)
    reference_number = serializers.CharField(required=False, allow_blank=True, allow_null=True)
    notes = serializers.CharField(required=False, allow_blank=True, allow_null=True)


class DecisionSerializer(serializers.Serializer):
    status = serializers.ChoiceField(choices=[ApprovalStatus.APPROVED, ApprovalStatus.REJECTED])


ENTRY_FIELDS = ['approval_status', 'created_by_name', 'approved_by_name', 'approved_at', 'created_at']


class EntrySerializer(serializers.ModelSerializer):
    created_by_name = serializers.CharField(source='created_by.username', read_only=True, default=None)
    approved_by_name = serializers.CharField(source='approved_by.username', read_only=True, default=None)


class VyapariTransactionSerializer(EntrySerializer):
    party_name = serializers.CharField(source='vyapari.name', read_only=True)

    class Meta:
        model = VyapariTransaction
        fields = ['id', 'transaction_id', 'vyapari', 'party_name', 'description', 'amount', 'items'] + ENTRY_FIELDS
        read_only_fields = fields


class KarigarTransactionSerializer(EntrySerializer):
    party_name = serializers.CharField(source='karigar.name', read_only=True)

    class Meta:
        model = KarigarTransaction
        fields = ['id', 'transaction_id', 'karigar', 'party_name', 'description', 'amount', 'items'] + ENTRY_FIELDS
        read_only_fields = fields


class VyapariPaymentSerializer(EntrySerializer):
    party_name = serializers.CharField(source='vyapari.name', read_only=True)

    class Meta:
        model = VyapariPayment
        fields = ['id', 'payment_id', 'vyapari', 'party_name', 'amount', 'payment_mode', 'reference_number',
                  'notes'] + ENTRY_FIELDS
        read_only_fields = fields


class KarigarPaymentSerializer(EntrySerializer):
    party_name = serializers.CharField(source='karigar.name', read_only=True)

    class Meta:
        model = KarigarPayment
        fields = ['id', 'payment_id', 'karigar', 'party_name', 'amount', 'payment_mode', 'reference_number',
                  'notes'] + ENTRY_FIELDS
        read_only_fields = fields


# book kind -> (party, transaction, payment) serializers
BOOK_SERIALIZERS = {
    'vyapari': (VyapariSerializer, VyapariTransactionSerializer, VyapariPaymentSerializer),
    'karigar': (KarigarSerializer, KarigarTransactionSerializer, KarigarPaymentSerializer),
}
