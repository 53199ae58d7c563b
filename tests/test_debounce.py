"""
Tests del debounce de comprobaciones de disponibilidad (registro).
"""
import threading
from unittest.mock import MagicMock

from app.ui.api_client import ErrorDeRed
from app.ui.debounce import Debouncer, VerificadorDisponibilidad
from app.ui.estado import RegistroState

INTERVALO = 0.05


def test_debouncer_solo_ejecuta_el_ultimo_valor():
    recibidos = []
    listo = threading.Event()

    def funcion(valor):
        recibidos.append(valor)
        listo.set()

    debouncer = Debouncer(funcion, intervalo=INTERVALO)
    for valor in ("a", "ab", "abc"):
        debouncer.llamar(valor)

    assert listo.wait(2)
    assert recibidos == ["abc"]
    assert not debouncer.pendiente


def test_debouncer_cancelar():
    funcion = MagicMock()
    debouncer = Debouncer(funcion, intervalo=INTERVALO)

    debouncer.llamar("x")
    debouncer.cancelar()
    # Un timer que ya venció no debe ejecutar tras cancelar
    debouncer._disparar("x", 1)

    funcion.assert_not_called()


def _verificador(email_disponible=True, cedula_disponible=True):
    cliente = MagicMock()
    cliente.verificar_email.return_value = email_disponible
    cliente.verificar_cedula.return_value = cedula_disponible
    estado = RegistroState()
    return VerificadorDisponibilidad(cliente, estado, intervalo=60), cliente, estado


def test_email_corto_no_se_comprueba():
    verificador, cliente, estado = _verificador()

    verificador.email_cambiado("a@b")

    assert not estado.verificando_email
    assert not verificador._email.pendiente


def test_email_ocupado_bloquea_envio():
    verificador, cliente, estado = _verificador(email_disponible=False)

    verificador.email_cambiado("acm1@seguraep.gob.ec")
    assert estado.verificando_email
    assert not estado.puede_enviar

    verificador._comprobar_email("acm1@seguraep.gob.ec")

    cliente.verificar_email.assert_called_once_with("acm1@seguraep.gob.ec")
    assert estado.email_disponible is False
    assert estado.mensajes == {"email": "Este email ya está registrado"}
    verificador.cancelar()


def test_cedula_solo_con_diez_digitos():
    verificador, cliente, estado = _verificador()

    verificador.cedula_cambiada("09123")
    assert not estado.verificando_cedula

    verificador.cedula_cambiada("0912345678")
    assert estado.verificando_cedula
    verificador._comprobar_cedula("0912345678")

    assert estado.cedula_disponible is True
    assert estado.puede_enviar
    verificador.cancelar()


def test_resultado_tardio_se_descarta():
    verificador, cliente, estado = _verificador(cedula_disponible=False)

    verificador.cedula_cambiada("0912345678")
    verificador.cedula_cambiada("0923456789")
    verificador._comprobar_cedula("0912345678")

    assert estado.cedula_disponible is None
    assert estado.verificando_cedula
    verificador.cancelar()


def test_fallo_de_red_deja_disponibilidad_desconocida():
    verificador, cliente, estado = _verificador()
    cliente.verificar_email.side_effect = ErrorDeRed()

    verificador.email_cambiado("nuevo@seguraep.gob.ec")
    verificador._comprobar_email("nuevo@seguraep.gob.ec")

    assert estado.email_disponible is None
    assert not estado.verificando_email
    assert estado.puede_enviar
    verificador.cancelar()
