from django.contrib import admin
from django.urls import path, include
from rest_framework import permissions
from drf_yasg.views import get_schema_view
from drf_yasg import openapi
from drf_spectacular.views import (
    SpectacularAPIView,
    SpectacularRedocView,
    SpectacularSwaggerView,
)


class NoThrottleSpectacularAPIView(SpectacularAPIView):
    throttle_classes = []


class NoThrottleSpectacularSwaggerView(SpectacularSwaggerView):
    throttle_classes = []


class NoThrottleSpectacularRedocView(SpectacularRedocView):
    throttle_classes = []


# Configuración para drf-yasg (respaldo)
schema_view = get_schema_view(
    openapi.Info(
        title="📦 API Stock Multi-Sucursal",
        default_version='v1.0.0',
        description="""
        ## 📄 Descripción
        Stock por sucursal, historial de movimientos y transferencias entre sucursales.

        ## 🔒 Autenticación
        Esta API utiliza JWT (JSON Web Tokens) con esquema Bearer.
        """,
        license=openapi.License(name="MIT License"),
    ),
    public=True,
    permission_classes=(permissions.AllowAny,),
)

urlpatterns = [
    path('admin/', admin.site.urls),

    # === API Routes ===#
    path('api/v1/', include("api.urls")),

    # === Documentación con drf-spectacular (Recomendado) ===#
    path('api/v1/schema/', NoThrottleSpectacularAPIView.as_view(), name='schema'),
    path('api/v1/schema/swagger-ui/',
         NoThrottleSpectacularSwaggerView.as_view(url_name='schema'), name='swagger-ui'),
    path('api/v1/schema/redoc/',
         NoThrottleSpectacularRedocView.as_view(url_name='schema'), name='redoc'),

    # === Documentación con drf-yasg ===#
    path('api/v1/swagger/', schema_view.with_ui('swagger', cache_timeout=0),
         name='schema-swagger-ui'),
]
