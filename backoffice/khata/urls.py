from django.urls import path
from . import views

# Both ledger books share one set of views; the book kind travels as a URL kwarg
BOOK_PREFIXES = {
    'vyapari': 'khata/vyaparis/',
    'karigar': 'khata/karigars/',
}

urlpatterns = [
    path('khata/analytics/', views.analytics, name='khata-analytics'),
]

for kind, prefix in BOOK_PREFIXES.items():
    book = {'book': kind}
    urlpatterns += [
        path(prefix, views.party_list_create, book, name=f'{kind}-list-create'),
        path(f'{prefix}pending/', views.party_pending, book, name=f'{kind}-pending'),
        path(f'{prefix}transactions/pending/', views.pending_transactions, book, name=f'{kind}-transactions-pending'),
        path(f'{prefix}transactions/<int:pk>/approve/', views.transaction_decide, book, name=f'{kind}-transaction-approve'),
        path(f'{prefix}payments/pending/', views.pending_payments, book, name=f'{kind}-payments-pending'),
        path(f'{prefix}payments/<int:pk>/approve/', views.payment_decide, book, name=f'{kind}-payment-approve'),
        path(f'{prefix}<int:pk>/', views.party_detail, book, name=f'{kind}-detail'),
        path(f'{prefix}<int:pk>/approve/', views.party_decide, book, name=f'{kind}-approve'),
        path(f'{prefix}<int:pk>/force-delete/', views.party_force_delete, book, name=f'{kind}-force-delete'),
        path(f'{prefix}<int:pk>/balance/', views.party_balance, book, name=f'{kind}-balance'),
        path(f'{prefix}<int:pk>/transactions/', views.party_transactions, book, name=f'{kind}-transactions'),
        path(f'{prefix}<int:pk>/payments/', views.party_payments, book, name=f'{kind}-payments'),
    ]
