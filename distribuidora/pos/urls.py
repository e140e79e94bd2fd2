from django.urls import path
from .views import order_list_create, order_detail, order_receipt, customer_orders

urlpatterns = [
    # Order endpoints
    path('orders/', order_list_create, name='order-list-create'),
    path('orders/<int:pk>/', order_detail, name='order-detail'),
    path('orders/<int:pk>/receipt/', order_receipt, name='order-receipt'),
    path('customers/<int:customer_id>/orders/', customer_orders, name='customer-orders'),
]
