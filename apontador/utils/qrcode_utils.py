# -*- coding: utf-8 -*-
"""
QR codes dos deep links do chão de fábrica.

Formato das URLs gravadas:
  <APP_URL>/qr/machine/<uuid da máquina>
  <APP_URL>/qr/op/<número da OP>
  <APP_URL>/qr/operator/<matrícula>

gerar_qrcode_png() devolve a etiqueta em PNG: QR à esquerda/em cima e a
legenda (código da máquina, número da OP ou matrícula) embaixo.
"""

import io
from pathlib import Path
from typing import Optional

import qrcode
import qrcode.constants
from PIL import Image, ImageDraw, ImageFont

TIPOS_QR = {
    "machine": "machine",
    "maquina": "machine",
    "op": "op",
    "operator": "operator",
    "operador": "operator",
}

QR_SIZE_PX = 320
MARGIN_PX = 16
FONT_PX = 28


def montar_url_qr(app_url: str, tipo: str, ident) -> str:
    """Ex.: montar_url_qr("https://fab.local", "op", 8209) -> https://fab.local/qr/op/8209"""
    destino = TIPOS_QR.get((tipo or "").lower())
    if destino is None:
        raise ValueError(f"Tipo de QR inválido: {tipo!r}")
    return f"{app_url.rstrip('/')}/qr/{destino}/{ident}"


def _load_font(size_px: int):
    """TTF comum do sistema; na falta, fonte bitmap padrão do Pillow."""
    candidates = [
        "DejaVuSans.ttf",
        "/usr/share/fonts/truetype/dejavu/DejaVuSans.ttf",
        "/usr/share/fonts/truetype/freefont/FreeSans.ttf",
        str(Path.cwd() / "arial.ttf"),
    ]
    for fp in candidates:
        try:
            return ImageFont.truetype(fp, size_px)
        except OSError:
            continue
    return ImageFont.load_default()


def _compose_png(conteudo: str, legenda: Optional[str]) -> Image.Image:
    qr = qrcode.QRCode(
        version=None,
        error_correction=qrcode.constants.ERROR_CORRECT_M,
        box_size=8,
        border=2,
    )
    qr.add_data(conteudo)
    qr.make(fit=True)
    qr_img = (
        qr.make_image(fill_color="black", back_color="white")
        .convert("L")
        .resize((QR_SIZE_PX, QR_SIZE_PX), Image.NEAREST)
    )

    if not legenda:
        return qr_img

    font = _load_font(FONT_PX)
    line_h = FONT_PX + MARGIN_PX
    etq = Image.new("L", (QR_SIZE_PX, QR_SIZE_PX + line_h), color=255)
    etq.paste(qr_img, (0, 0))

    draw = ImageDraw.Draw(etq)
    largura = draw.textlength(legenda, font=font)
    x = max(MARGIN_PX, int((QR_SIZE_PX - largura) // 2))
    draw.text((x, QR_SIZE_PX), legenda, font=font, fill=0)
    return etq


def gerar_qrcode_png(conteudo: str, legenda: Optional[str] = None) -> bytes:
    buffer = io.BytesIO()
    _compose_png(conteudo, legenda).save(buffer, format="PNG")
    return buffer.getvalue()
