from django.urls import path
from . import views

app_name = 'payments'

urlpatterns = [
    # Split payments
    # POST   /api/payments/splits/{id}/pay/      - Start checkout for caller's slot
    # POST   /api/payments/splits/{id}/confirm/  - Verify and apply a payment
    path('splits/<uuid:split_id>/pay/', views.pay_split, name='pay'),
    path('splits/<uuid:split_id>/confirm/', views.confirm_split_payment, name='confirm'),

    # Processor notifications (signature verified, no auth)
    path('webhook/', views.webhook, name='webhook'),

    # Payment history
    path('history/<uuid:company_id>/', views.payment_history, name='history'),

    # Payout account onboarding
    path('connect/create/', views.connect_create, name='connect-create'),
    path('connect/onboarding/', views.connect_onboarding, name='connect-onboarding'),
    path('connect/status/<uuid:company_id>/', views.connect_status, name='connect-status'),
    path('connect/dashboard/', views.connect_dashboard, name='connect-dashboard'),
]
