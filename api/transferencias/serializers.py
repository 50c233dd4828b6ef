from rest_framework import serializers
from .models import Transferencia, TransferenciaDetalle


class TransferenciaDetalleSerializer(serializers.ModelSerializer):
    producto_codigo = serializers.CharField(
        source="producto.codigo", read_only=True)
    producto_nombre = serializers.CharField(
        source="producto.nombre", read_only=True)
    pendiente_devolucion = serializers.DecimalField(
        max_digits=14, decimal_places=3, read_only=True)

    class Meta:
        model = TransferenciaDetalle
        fields = ["producto", "producto_codigo", "producto_nombre",
                  "cantidad", "devuelto", "pendiente_devolucion"]
        read_only_fields = fields


class TransferenciaSerializer(serializers.ModelSerializer):
    sucursal_origen_nombre = serializers.CharField(
        source="sucursal_origen.nombre", read_only=True)
    sucursal_destino_nombre = serializers.CharField(
        source="sucursal_destino.nombre", read_only=True)
    usuario_solicita_username = serializers.CharField(
        source="usuario_solicita.username", read_only=True)
    productos = TransferenciaDetalleSerializer(many=True, read_only=True)
    completamente_devuelta = serializers.BooleanField(read_only=True)

    class Meta:
        model = Transferencia
        fields = [
            "id", "sucursal_origen", "sucursal_origen_nombre",
            "sucursal_destino", "sucursal_destino_nombre", "estado", "motivo",
            "productos", "completamente_devuelta",
            "usuario_solicita", "usuario_solicita_username", "usuario_aprueba",
            "motivo_rechazo", "motivo_cancelacion", "usuario_cancela",
            "fecha_solicitud", "fecha_resolucion", "fecha_cancelacion",
        ]
        read_only_fields = fields


# === Requests ===#

class LineaProductoSerializer(serializers.Serializer):
    producto_id = serializers.IntegerField(min_value=1)
    cantidad = serializers.DecimalField(max_digits=14, decimal_places=3)

    def validate_cantidad(self, value):
        if value <= 0:
            raise serializers.ValidationError("La cantidad debe ser mayor a 0.")
        return value


class CrearTransferenciaSerializer(serializers.Serializer):
    sucursal_origen_id = serializers.IntegerField(min_value=1)
    sucursal_destino_id = serializers.IntegerField(min_value=1)
    productos = LineaProductoSerializer(many=True, allow_empty=False)
    motivo = serializers.CharField(
        max_length=255, required=False, allow_blank=True, default="")

    def validate(self, attrs):
        if attrs["sucursal_origen_id"] == attrs["sucursal_destino_id"]:
            raise serializers.ValidationError(
                "La sucursal de origen y la de destino deben ser distintas.")
        return attrs


class CambiarEstadoSerializer(serializers.Serializer):
    estado = serializers.ChoiceField(choices=[
        Transferencia.Estado.APROBADA, Transferencia.Estado.RECHAZADA])
    motivo = serializers.CharField(
        max_length=255, required=False, allow_blank=True, default="")


class DevolverTransferenciaSerializer(serializers.Serializer):
    devoluciones = LineaProductoSerializer(many=True, allow_empty=False)


class CancelarTransferenciaSerializer(serializers.Serializer):
    motivo = serializers.CharField(max_length=255, allow_blank=False)
