from rest_framework import serializers
from .models import StockSucursal, MovimientoStock


class StockSucursalSerializer(serializers.ModelSerializer):
    producto_codigo = serializers.CharField(
        source="producto.codigo", read_only=True)
    producto_nombre = serializers.CharField(
        source="producto.nombre", read_only=True)
    sucursal_nombre = serializers.CharField(
        source="sucursal.nombre", read_only=True)
    diferencia = serializers.DecimalField(
        max_digits=14, decimal_places=3, read_only=True)
    es_stock_bajo = serializers.BooleanField(read_only=True)

    class Meta:
        model = StockSucursal
        fields = [
            "id", "sucursal", "sucursal_nombre", "producto", "producto_codigo",
            "producto_nombre", "cantidad", "stock_minimo", "diferencia",
            "es_stock_bajo", "ultima_actualizacion",
        ]
        read_only_fields = fields


class MovimientoStockSerializer(serializers.ModelSerializer):
    usuario_username = serializers.CharField(
        source="usuario.username", read_only=True, default=None)
    producto_nombre = serializers.CharField(
        source="producto.nombre", read_only=True)
    sucursal_nombre = serializers.CharField(
        source="sucursal.nombre", read_only=True)

    class Meta:
        model = MovimientoStock
        fields = [
            "id", "sucursal", "sucursal_nombre", "producto", "producto_nombre",
            "tipo", "cantidad", "stock_anterior", "stock_nuevo", "motivo",
            "referencia_tipo", "referencia_id", "fecha", "usuario", "usuario_username",
        ]
        read_only_fields = fields


# === Requests ===#

class AjusteStockSerializer(serializers.Serializer):
    """Ajuste relativo: `ajuste` positivo suma, negativo resta."""
    sucursal_id = serializers.IntegerField(min_value=1)
    producto_id = serializers.IntegerField(min_value=1)
    ajuste = serializers.DecimalField(max_digits=14, decimal_places=3)
    motivo = serializers.CharField(max_length=255, allow_blank=False)


class FijarStockSerializer(serializers.Serializer):
    cantidad = serializers.DecimalField(
        max_digits=14, decimal_places=3, min_value=0, required=False)
    stock_minimo = serializers.DecimalField(
        max_digits=14, decimal_places=3, min_value=0, required=False)
    motivo = serializers.CharField(
        max_length=255, required=False, allow_blank=True)

    def validate(self, attrs):
        if "cantidad" not in attrs and "stock_minimo" not in attrs:
            raise serializers.ValidationError(
                "Debe indicar cantidad y/o stock_minimo.")
        return attrs


class InicializarItemSerializer(serializers.Serializer):
    producto_id = serializers.IntegerField(min_value=1)
    cantidad = serializers.DecimalField(
        max_digits=14, decimal_places=3, min_value=0, required=False, default=0)
    stock_minimo = serializers.DecimalField(
        max_digits=14, decimal_places=3, min_value=0, required=False)


class InicializarStockSerializer(serializers.Serializer):
    sucursal_id = serializers.IntegerField(min_value=1)
    productos = InicializarItemSerializer(many=True, allow_empty=False)


class MovimientosQuerySerializer(serializers.Serializer):
    sucursal_id = serializers.IntegerField(min_value=1, required=False)
    producto_id = serializers.IntegerField(min_value=1, required=False)
    tipo = serializers.ChoiceField(
        choices=MovimientoStock.Tipo.choices, required=False)
    referencia_tipo = serializers.ChoiceField(
        choices=MovimientoStock.ReferenciaTipo.choices, required=False)
    referencia_id = serializers.CharField(max_length=64, required=False)
    fecha_desde = serializers.DateTimeField(required=False)
    fecha_hasta = serializers.DateTimeField(required=False)

    def validate(self, attrs):
        desde, hasta = attrs.get("fecha_desde"), attrs.get("fecha_hasta")
        if desde and hasta and desde > hasta:
            raise serializers.ValidationError(
                "fecha_desde no puede ser posterior a fecha_hasta.")
        return attrs
