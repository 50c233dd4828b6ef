from django.urls import path, include
from rest_framework_simplejwt.views import (
    TokenObtainPairView,
    TokenRefreshView,
)
from . import views

urlpatterns = [
    # === Autenticación JWT ===#
    path('token', TokenObtainPairView.as_view(), name='token_obtain_pair'),
    path('token/refresh', TokenRefreshView.as_view(), name='token_refresh'),

    # === Stock por sucursal e historial de movimientos ===#
    path('', include('api.stock.urls')),

    # === Transferencias entre sucursales ===#
    path('', include('api.transferencias.urls')),

    # === Notificaciones ===#
    path('notificaciones', views.listar_notificaciones_view,
         name='notificaciones'),
    path('notificaciones/<int:notificacion_id>/leida',
         views.marcar_leida_view, name='notificacion-leida'),
]
