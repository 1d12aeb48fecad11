"""
Servicio de envío de correos al paciente vía Resend.

Comunica el resultado de la evaluación bajo la Ley de Urgencia
(Decreto 34) y, en casos aceptados, el estado de la aseguradora.

Docs: https://resend.com/docs/api-reference/emails/send-email
"""

import logging
from html import escape

import httpx

from saludia.config import get_settings

settings = get_settings()
logger = logging.getLogger(__name__)

EMAIL_SUBJECT = "Resultado de Evaluación - Ley de Urgencia"

_RESULT_COLOR = {"aceptado": "#10b981", "rechazado": "#ef4444"}


class EmailError(Exception):
    """Error de comunicación con la API de Resend."""

    def __init__(self, message: str, response_data: dict | None = None):
        self.message = message
        self.response_data = response_data or {}
        super().__init__(message)


def _http_client() -> httpx.AsyncClient:
    return httpx.AsyncClient(timeout=settings.HTTP_TIMEOUT_SECONDS)


# ── Plantilla ────────────────────────────────────────

def _insurance_block(
    insurance_status: str | None, insurance_type: str | None
) -> tuple[str, str]:
    """Texto y color del estado de aseguradora. Vacío si no aplica."""
    if not insurance_status or not insurance_type:
        return "", ""
    name = insurance_type.upper()
    if insurance_status in ("pendiente", "pendiente_envio"):
        return f"PENDIENTE RESOLUCIÓN {name}", "#6b7280"
    if insurance_status == "aceptada":
        return f"ACEPTADO POR {name}", "#10b981"
    if insurance_status == "rechazada":
        return f"RECHAZADO POR {name}", "#ef4444"
    return "", ""


def _insurance_notice(insurance_status: str, insurance_type: str) -> str:
    if insurance_status == "aceptada":
        return (
            f"Su aseguradora ({insurance_type}) ha aprobado la decisión médica. "
            "La Ley de Urgencia está activa y en pleno efecto."
        )
    if insurance_status == "rechazada":
        return (
            f"Su aseguradora ({insurance_type}) ha rechazado la decisión médica. "
            "La Ley de Urgencia no se activará. Por favor, contacte con su "
            "aseguradora para más información sobre su caso."
        )
    return (
        "Para que la Ley de Urgencia se active definitivamente, su aseguradora "
        f"({insurance_type}) debe aprobar esta decisión médica. La activación "
        f"definitiva de la ley está sujeta a la aprobación de {insurance_type}."
    )


def build_patient_email_html(
    *,
    patient_name: str,
    diagnosis: str,
    result: str,
    explanation: str,
    additional_comment: str | None = None,
    insurance_status: str | None = None,
    insurance_type: str | None = None,
) -> str:
    """Genera el HTML del correo de resultado. Todo texto libre se escapa."""
    result_text = "ACTIVADA" if result == "aceptado" else "NO ACTIVADA"
    result_color = _RESULT_COLOR.get(result, "#ef4444")
    status_text, status_color = _insurance_block(insurance_status, insurance_type)

    parts = [
        "<!DOCTYPE html><html><head><meta charset=\"utf-8\"></head>",
        "<body style=\"font-family: sans-serif; color: #333; max-width: 600px; margin: 0 auto;\">",
        "<h1>Resultado de Evaluación</h1>",
        "<p>Ley de Urgencia - Decreto 34</p>",
        f"<p>Estimado/a {escape(patient_name)},</p>",
        "<p>Por medio del presente, le informamos el resultado de la evaluación "
        "de su caso clínico bajo la Ley de Urgencia (Decreto 34).</p>",
        f"<div style=\"border-left: 4px solid {result_color}; padding: 20px;\">",
        "<strong>Decisión Médica:</strong>",
        f"<div style=\"color: {result_color}; font-size: 28px; font-weight: bold;\">"
        f"LEY DE URGENCIA {result_text}</div>",
        f"<p><strong>Diagnóstico:</strong> {escape(diagnosis)}</p>",
        "</div>",
    ]

    if status_text:
        parts.append(
            f"<div style=\"border-left: 4px solid {status_color}; padding: 20px;\">"
            "<strong>Estado de Aseguradora:</strong>"
            f"<div style=\"color: {status_color}; font-size: 24px; font-weight: bold;\">"
            f"{escape(status_text)}</div></div>"
        )
        if result == "aceptado":
            parts.append(
                "<div style=\"background: #fef3c7; padding: 15px;\"><strong>Importante:</strong> "
                f"{escape(_insurance_notice(insurance_status, insurance_type))}</div>"
            )

    parts += [
        "<h3>Fundamento Legal:</h3>",
        "<p>Según lo establecido en el Decreto 34, que regula la Ley de Urgencia en Chile, "
        "se ha evaluado su condición médica bajo los criterios establecidos en dicha normativa.</p>",
        "<h3>Explicación del Análisis:</h3>",
        f"<p>{escape(explanation)}</p>",
    ]
    if additional_comment:
        parts += [
            "<h3>Comentario del Médico Tratante:</h3>",
            f"<p>{escape(additional_comment)}</p>",
        ]
    parts += [
        "<p>Ante cualquier duda o consulta, no dude en contactarnos.</p>",
        "<p>Atentamente,<br><strong>Equipo Médico - SaludIA</strong></p>",
        "<p style=\"color: #6b7280; font-size: 14px;\">Este es un correo automático "
        "generado por SaludIA.<br>Por favor no responda directamente a este mensaje.</p>",
        "</body></html>",
    ]
    return "\n".join(parts)


# ── Envío ────────────────────────────────────────────

async def send_patient_email(
    *,
    to: str,
    patient_name: str,
    diagnosis: str,
    result: str,
    explanation: str,
    additional_comment: str | None = None,
    insurance_status: str | None = None,
    insurance_type: str | None = None,
) -> dict:
    """
    Envía el correo de resultado al paciente.

    Returns:
        dict con id del mensaje y status ("sent" o "simulated").

    Raises:
        EmailError si el proveedor responde con error o no es alcanzable.
    """
    html = build_patient_email_html(
        patient_name=patient_name,
        diagnosis=diagnosis,
        result=result,
        explanation=explanation,
        additional_comment=additional_comment,
        insurance_status=insurance_status,
        insurance_type=insurance_type,
    )

    # ── Modo simulación (sin API key) ────────────────
    if not settings.email_configured:
        logger.warning("Resend API key no configurada — simulando envío de correo")
        logger.info(f"[SIMULATED EMAIL] To: {to} | Result: {result}")
        return {"id": "SIMULATED", "status": "simulated", "to": to}

    payload = {
        "from": settings.EMAIL_FROM,
        "to": [to],
        "subject": EMAIL_SUBJECT,
        "html": html,
    }
    headers = {
        "Authorization": f"Bearer {settings.RESEND_API_KEY}",
        "Content-Type": "application/json",
    }

    try:
        async with _http_client() as client:
            response = await client.post(settings.RESEND_API_URL, json=payload, headers=headers)

            if response.status_code in (200, 201):
                data = response.json()
                logger.info(f"Correo enviado a {to} | id: {data.get('id')}")
                return {"id": data.get("id"), "status": "sent", "to": to}

            error_data = response.json() if response.headers.get("content-type", "").startswith("application/json") else {}
            error_msg = error_data.get("message", response.text)
            logger.error(f"Resend error {response.status_code}: {error_msg}")
            raise EmailError(
                f"Error Resend ({response.status_code}): {error_msg}",
                response_data=error_data,
            )

    except httpx.TimeoutException:
        logger.error("Resend timeout")
        raise EmailError("Timeout al comunicar con el servicio de correo")
    except httpx.RequestError as e:
        logger.error(f"Resend request error: {e}")
        raise EmailError(f"Error de conexión con el servicio de correo: {str(e)}")
