"""Shared test helpers: ERP fakes, spreadsheet builders, scenario rows."""

from io import BytesIO
from typing import Any

import openpyxl

from coop_ingestion.domain.types import ErpCredentials
from coop_kernel.exceptions import ErpAuthenticationError

TEST_ACTOR_ID = "user-admin-1"
TEST_COOP_ID = "coop-1"


# =============================================================================
# ERP fakes
# =============================================================================


class FakeErpClient:
    """In-memory stand-in for OdooClient.

    ``tables`` maps model name -> list of records returned by search_read.
    Every call is appended to ``calls`` as (model, domain, fields).
    """

    def __init__(
        self,
        credentials: ErpCredentials,
        tables: dict[str, list[dict[str, Any]]] | None = None,
        fail_auth: bool = False,
    ):
        self.credentials = credentials
        self.tables = tables if tables is not None else {}
        self.fail_auth = fail_auth
        self.calls: list[tuple[str, list, list]] = []
        self.closed = False

    def authenticate(self) -> int:
        if self.fail_auth:
            raise ErpAuthenticationError(self.credentials.url, self.credentials.username)
        return 7

    def search_read(self, model: str, domain: list, fields: list, **options: Any) -> list:
        self.authenticate()
        self.calls.append((model, domain, fields))
        return [dict(r) for r in self.tables.get(model, [])]

    def close(self) -> None:
        self.closed = True


class FakeErpClientFactory:
    """Builds FakeErpClient instances sharing one set of tables."""

    def __init__(self, tables: dict[str, list[dict[str, Any]]] | None = None):
        self.tables = tables if tables is not None else {}
        self.built: list[FakeErpClient] = []
        self.fail_auth = False

    def __call__(self, credentials: ErpCredentials, timeout_s: float) -> FakeErpClient:
        client = FakeErpClient(credentials, self.tables, fail_auth=self.fail_auth)
        self.built.append(client)
        return client


def default_erp_tables() -> dict[str, list[dict[str, Any]]]:
    return {
        "account.account": [
            {"id": 1, "code": "1101", "name": "Caja", "account_type": "asset_cash"},
            {"id": 2, "code": "2101", "name": "Proveedores", "account_type": "liability_payable"},
            {"id": 3, "code": "3101", "name": "Capital social", "account_type": "equity"},
        ],
        "account.move.line": [
            {"id": 10, "account_id": [1, "1101 Caja"], "debit": 1000.0, "credit": 0.0},
            {"id": 11, "account_id": [1, "1101 Caja"], "debit": 500.0, "credit": 200.0},
            {"id": 12, "account_id": [2, "2101 Proveedores"], "debit": 0.0, "credit": 700.0},
            {"id": 13, "account_id": [3, "3101 Capital social"], "debit": 0.0, "credit": 600.0},
        ],
        "account.payment": [
            {"id": 21, "name": "PAY/001", "amount": 300.0, "payment_type": "inbound", "ref": False},
            {"id": 22, "name": False, "amount": 120.0, "payment_type": "outbound", "ref": "Luz"},
            {"id": 23, "name": False, "amount": 50.0, "payment_type": "outbound", "ref": False},
        ],
        "res.partner": [
            {"id": 5, "name": "Ana Pérez", "ref": "S-100", "credit": 0.0, "debit": 500.0},
            {"id": 42, "name": "Luis Gómez", "ref": False, "credit": 0.0, "debit": 200.0},
        ],
    }


# =============================================================================
# Spreadsheet builders
# =============================================================================

BALANCE_HEADERS = [
    "codigo_cuenta",
    "nombre_cuenta",
    "tipo_cuenta",
    "cuenta_padre",
    "saldo_final_debe",
    "saldo_final_haber",
]

# 6 assets (final debit 510000), 4 liabilities (final credit 255000),
# 3 equity (final credit 255000)
BALANCE_SCENARIO_ROWS = [
    ["1101", "Caja", "activo", "Activo corriente", 20000, 0],
    ["1102", "Bancos", "activo", "Activo corriente", 90000, 0],
    ["1201", "Cuentas por cobrar socios", "activo", "Activo corriente", 100000, 0],
    ["1301", "Inventario", "activo", "Activo corriente", 50000, 0],
    ["1501", "Terrenos", "activo", "Activo no corriente", 150000, 0],
    ["1502", "Edificios", "activo", "Activo no corriente", 100000, 0],
    ["2101", "Proveedores", "pasivo", "Pasivo corriente", 0, 60000],
    ["2102", "Impuestos por pagar", "pasivo", "Pasivo corriente", 0, 15000],
    ["2201", "Préstamo bancario", "pasivo", "Pasivo no corriente", 0, 120000],
    ["2202", "Fondo de previsión", "pasivo", "Pasivo no corriente", 0, 60000],
    ["3101", "Aportes de socios", "patrimonio", "Capital", 0, 200000],
    ["3201", "Reserva legal", "patrimonio", "Reservas", 0, 30000],
    ["3301", "Excedentes acumulados", "patrimonio", "Resultados", 0, 25000],
]


def csv_bytes(headers: list[str], rows: list[list[Any]]) -> bytes:
    lines = [",".join(headers)]
    for row in rows:
        lines.append(",".join("" if v is None else str(v) for v in row))
    return ("\n".join(lines) + "\n").encode("utf-8")


def xlsx_bytes(
    headers: list[str],
    rows: list[list[Any]],
    preamble: list[list[Any]] | None = None,
    sheet_title: str = "Datos",
) -> bytes:
    """Workbook with optional title/instruction rows above the header row."""
    wb = openpyxl.Workbook()
    ws = wb.active
    ws.title = sheet_title
    for line in preamble or []:
        ws.append(line)
    ws.append(headers)
    for row in rows:
        ws.append(row)
    buf = BytesIO()
    wb.save(buf)
    return buf.getvalue()
