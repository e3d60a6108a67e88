"""
Validation and blocking messages, per language.

Unknown languages fall back to English.
"""

from __future__ import annotations

DEFAULT_LANGUAGE = "en"

MESSAGES: dict[str, dict[str, str]] = {
    "en": {
        "name": "Name is required",
        "email": "Invalid email",
        "phone": "Invalid phone number",
        "street": "Street is required",
        "number": "Number is required",
        "neighborhood": "Neighborhood is required",
        "city": "City is required",
        "postal_code": "Postal code is required",
        "payment_method": "Payment method not available",
        "change_for": "Change must cover the order total",
        "min_order": "Order is below the minimum amount",
        "outside_area": "Address is outside our delivery area",
        "calculation_error": "Could not calculate the delivery fee",
        "fee_pending": "Delivery fee is still being calculated",
    },
    "pt": {
        "name": "Nome é obrigatório",
        "email": "Email inválido",
        "phone": "Telefone inválido",
        "street": "Endereço é obrigatório",
        "number": "Número é obrigatório",
        "neighborhood": "Bairro é obrigatório",
        "city": "Cidade é obrigatória",
        "postal_code": "CEP é obrigatório",
        "payment_method": "Forma de pagamento indisponível",
        "change_for": "O troco deve cobrir o total do pedido",
        "min_order": "Pedido abaixo do valor mínimo",
        "outside_area": "Endereço fora da área de entrega",
        "calculation_error": "Falha no cálculo da taxa de entrega",
        "fee_pending": "A taxa de entrega ainda está sendo calculada",
    },
}


def message(key: str, language: str) -> str:
    catalog = MESSAGES.get(language) or MESSAGES[DEFAULT_LANGUAGE]
    return catalog.get(key) or MESSAGES[DEFAULT_LANGUAGE][key]


__all__ = ("DEFAULT_LANGUAGE", "MESSAGES", "message")
