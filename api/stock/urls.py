from django.urls import path
from . import views

urlpatterns = [
    path('stock', views.listar_stock, name='stock-list'),
    path('stock/', views.listar_stock),
    path('stock/bajo', views.listar_stock_bajo, name='stock-bajo'),
    path('stock/bajo/', views.listar_stock_bajo),
    path('stock/ajustar', views.ajustar_stock, name='stock-ajustar'),
    path('stock/ajustar/', views.ajustar_stock),
    path('stock/inicializar', views.inicializar_stock, name='stock-inicializar'),
    path('stock/inicializar/', views.inicializar_stock),
    path('stock/movimientos', views.listar_movimientos, name='stock-movimientos'),
    path('stock/movimientos/', views.listar_movimientos),
    path('stock/<int:sucursal_id>/<int:producto_id>',
         views.fijar_stock, name='stock-fijar'),
    path('stock/<int:sucursal_id>/<int:producto_id>/', views.fijar_stock),
]
