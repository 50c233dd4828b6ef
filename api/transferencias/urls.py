from django.urls import path
from . import views

urlpatterns = [
    path('transferencias', views.transferencias, name='transferencias'),
    path('transferencias/', views.transferencias),
    path('transferencias/pendientes', views.transferencias_pendientes,
         name='transferencias-pendientes'),
    path('transferencias/pendientes/', views.transferencias_pendientes),
    path('transferencias/sucursal/<int:sucursal_id>', views.transferencias_por_sucursal,
         name='transferencias-sucursal'),
    path('transferencias/sucursal/<int:sucursal_id>/',
         views.transferencias_por_sucursal),
    path('transferencias/<int:transferencia_id>', views.detalle_transferencia,
         name='transferencia-detalle'),
    path('transferencias/<int:transferencia_id>/',
         views.detalle_transferencia),
    path('transferencias/<int:transferencia_id>/estado', views.cambiar_estado,
         name='transferencia-estado'),
    path('transferencias/<int:transferencia_id>/estado/', views.cambiar_estado),
    path('transferencias/<int:transferencia_id>/devolver', views.devolver_transferencia,
         name='transferencia-devolver'),
    path('transferencias/<int:transferencia_id>/devolver/',
         views.devolver_transferencia),
    path('transferencias/<int:transferencia_id>/cancelar', views.cancelar_transferencia,
         name='transferencia-cancelar'),
    path('transferencias/<int:transferencia_id>/cancelar/',
         views.cancelar_transferencia),
]
