from django.urls import path
from .views import customer_list_create, customer_search, customer_detail

urlpatterns = [
    # Customer endpoints
    path('customers/', customer_list_create, name='customer-list-create'),
    path('customers/search/', customer_search, name='customer-search'),
    path('customers/<int:pk>/', customer_detail, name='customer-detail'),
]
