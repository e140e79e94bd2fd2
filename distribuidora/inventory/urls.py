from django.urls import path
from .views import stock_in_view, stock_out_view, stock_adjust_view, movement_list

urlpatterns = [
    # Stock endpoints
    path('stock/in/', stock_in_view, name='stock-in'),
    path('stock/out/', stock_out_view, name='stock-out'),
    path('stock/adjust/', stock_adjust_view, name='stock-adjust'),
    path('stock/movements/', movement_list, name='stock-movement-list'),
]
