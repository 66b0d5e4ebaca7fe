"""Exceções de domínio levantadas pelos serviços e tratadas em utils/respostas.py."""


class RegraNegocioError(ValueError):
    """Violação de regra de negócio (HTTP 400)."""

    def __init__(self, message: str, *, error: str = "regra_negocio"):
        super().__init__(message)
        self.error = error
        self.message = message


class RegistroNaoEncontrado(LookupError):
    """Registro referenciado não existe (HTTP 404)."""

    def __init__(self, entidade: str, ident=None):
        message = f"{entidade} não encontrado(a)"
        if ident is not None:
            message = f"{message}: {ident}"
        super().__init__(message)
        self.error = "nao_encontrado"
        self.message = message
        self.entidade = entidade
