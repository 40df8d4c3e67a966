from django.urls import path
from .views import (
    PaymentViewSet,
    reconcile_vendor_balance,
    reconcile_all_balances,
    balance_report
)

payment_create = PaymentViewSet.as_view({
    'post': 'create',
})
payment_update = PaymentViewSet.as_view({
    'put': 'update',
    'patch': 'update',
})
payment_delete = PaymentViewSet.as_view({
    'delete': 'destroy',
})

urlpatterns = [
    path('transactions/<str:transaction_id>/', payment_update, name='transaction-update'),
    path('<str:vendor_id>/transactions/', payment_create, name='transaction-create'),
    path('<str:vendor_id>/transactions/<str:transaction_id>/', payment_delete, name='transaction-delete'),

    # Balance Reconciliation APIs
    path('reconcile/<str:vendor_id>/', reconcile_vendor_balance, name='reconcile_vendor_balance'),
    path('reconcile-all/', reconcile_all_balances, name='reconcile_all_balances'),
    path('balance-report/', balance_report, name='balance_report'),
]
