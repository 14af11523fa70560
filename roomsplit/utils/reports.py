"""
Spending reports over a household's expenses.

Filters expenses by month, room and payer, aggregates spending, settles the
filtered subset and renders the result as CSV.
"""

import csv
import io
import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional

from roomsplit.utils.settlement_engine import (
    ExpenseRecord,
    MemberRecord,
    Transfer,
    compute_balances,
    match_settlements,
    month_key,
)

logger = logging.getLogger(__name__)

REPORT_KINDS = ("overview", "details", "balance", "net")
ALL_MONTHS_LABEL = "All"
CSV_BOM = "\ufeff"


@dataclass(frozen=True)
class NetSpending:
    member_id: str
    total_spent: int
    total_received: int
    total_paid: int
    net_spending: int


def available_months(expenses: Iterable[ExpenseRecord]) -> List[str]:
    """Distinct "YYYY-MM" keys of dated expenses, newest first."""
    months = {month_key(expense.date) for expense in expenses if expense.date is not None}
    return sorted(months, reverse=True)


def month_label(month: Optional[str]) -> str:
    if not month:
        return ALL_MONTHS_LABEL
    year, month_number = month.split("-")
    return f"{month_number}/{year}"


def filter_expenses(
    expenses: Iterable[ExpenseRecord],
    members: Iterable[MemberRecord],
    month: Optional[str] = None,
    room: Optional[str] = None,
    payer: Optional[str] = None
) -> List[ExpenseRecord]:
    """
    Keep expenses matching every given filter.

    room matches on the payer's room, payer on the paying member id.
    """
    rooms = {member.id: member.room for member in members}
    result = []
    for expense in expenses:
        if month and (expense.date is None or month_key(expense.date) != month):
            continue
        if room and rooms.get(expense.paid_by) != room:
            continue
        if payer and expense.paid_by != payer:
            continue
        result.append(expense)
    return result


def spending_by_member(members: Iterable[MemberRecord], expenses: Iterable[ExpenseRecord]) -> Dict[str, int]:
    """Total amount paid out by each member; unknown payers are left out."""
    spending = {member.id: 0 for member in members}
    for expense in expenses:
        if expense.paid_by in spending:
            spending[expense.paid_by] += int(expense.amount)
    return spending


def spending_by_description(expenses: Iterable[ExpenseRecord]) -> Dict[str, int]:
    """Totals per expense description, largest first."""
    totals: Dict[str, int] = {}
    for expense in expenses:
        totals[expense.description] = totals.get(expense.description, 0) + int(expense.amount)
    return dict(sorted(totals.items(), key=lambda item: item[1], reverse=True))


def net_spending(
    members: Iterable[MemberRecord],
    expenses: Iterable[ExpenseRecord],
    transfers: Iterable[Transfer]
) -> List[NetSpending]:
    """
    What each member actually spent once the transfers are made.

    net = total paid for expenses - transfers received + transfers sent
    """
    members = list(members)
    transfers = list(transfers)
    spent = spending_by_member(members, expenses)

    result = []
    for member in members:
        received = sum(transfer.amount for transfer in transfers if transfer.to_id == member.id)
        paid = sum(transfer.amount for transfer in transfers if transfer.from_id == member.id)
        total_spent = spent.get(member.id, 0)
        result.append(NetSpending(
            member_id=member.id,
            total_spent=total_spent,
            total_received=received,
            total_paid=paid,
            net_spending=total_spent - received + paid
        ))

    result.sort(key=lambda item: item.net_spending, reverse=True)
    return result


@dataclass(frozen=True)
class MonthlyReport:
    month: Optional[str]
    expenses: List[ExpenseRecord]
    total: int
    spending: Dict[str, int]
    categories: Dict[str, int]
    balances: Dict[str, int]
    transfers: List[Transfer]
    net: List[NetSpending]


def build_report(
    members: Iterable[MemberRecord],
    expenses: Iterable[ExpenseRecord],
    month: Optional[str] = None,
    room: Optional[str] = None,
    payer: Optional[str] = None
) -> MonthlyReport:
    """Filter the expenses and compute every aggregate of the report in one pass."""
    members = list(members)
    filtered = filter_expenses(expenses, members, month=month, room=room, payer=payer)
    balances = compute_balances(members, filtered)
    transfers = match_settlements(balances)

    logger.debug(f"Report month={month} room={room} payer={payer}: "
                 f"{len(filtered)} expenses, {len(transfers)} transfers")

    return MonthlyReport(
        month=month,
        expenses=filtered,
        total=sum(int(expense.amount) for expense in filtered),
        spending=spending_by_member(members, filtered),
        categories=spending_by_description(filtered),
        balances=balances,
        transfers=transfers,
        net=net_spending(members, filtered, transfers)
    )


def export_report_csv(report: MonthlyReport, members: Iterable[MemberRecord], kind: str) -> str:
    """
    Render one report kind as CSV text, prefixed with a UTF-8 BOM so
    spreadsheet tools detect the encoding.

    Kinds: overview (spending per member and per description), details (one
    row per expense), balance (balances and settlement transfers), net (net
    spending per member).
    """
    if kind not in REPORT_KINDS:
        raise ValueError(f"Unknown report kind {kind!r}, expected one of {', '.join(REPORT_KINDS)}")

    by_id = {member.id: member for member in members}
    label = month_label(report.month)
    buffer = io.StringIO()
    writer = csv.writer(buffer)

    if kind == "overview":
        writer.writerow(["Month", "Member", "Room", "Amount spent"])
        for member_id, amount in report.spending.items():
            if amount > 0:
                member = by_id[member_id]
                writer.writerow([label, member.name, member.room, amount])
        writer.writerow([])
        writer.writerow(["Category", "Amount"])
        for description, amount in report.categories.items():
            writer.writerow([description, amount])

    elif kind == "details":
        writer.writerow(["Month", "Member", "Room", "Description", "Date", "Amount"])
        for expense in report.expenses:
            payer = by_id.get(expense.paid_by)
            if payer is None:
                continue
            writer.writerow([
                expense.date.strftime("%m/%Y") if expense.date else "",
                payer.name,
                payer.room,
                expense.description,
                expense.date.strftime("%d/%m/%Y") if expense.date else "",
                int(expense.amount)
            ])

    elif kind == "balance":
        writer.writerow(["Month", "Member", "Room", "Balance", "Status"])
        for member_id, balance in report.balances.items():
            if balance == 0:
                continue
            member = by_id[member_id]
            status = "Receives" if balance > 0 else "Pays"
            writer.writerow([label, member.name, member.room, abs(balance), status])
        writer.writerow([])
        writer.writerow(["Payer", "Room", "Receiver", "Room", "Amount"])
        for transfer in report.transfers:
            payer = by_id.get(transfer.from_id)
            receiver = by_id.get(transfer.to_id)
            if payer and receiver:
                writer.writerow([payer.name, payer.room, receiver.name, receiver.room, transfer.amount])

    else:
        writer.writerow(["Month", "Member", "Room", "Total spent", "Total received",
                         "Total paid", "Net spending"])
        for item in report.net:
            member = by_id[item.member_id]
            writer.writerow([label, member.name, member.room, item.total_spent,
                             item.total_received, item.total_paid, item.net_spending])

    return CSV_BOM + buffer.getvalue()


def report_filename(kind: str, month: Optional[str]) -> str:
    return f"report-{kind}-{month or 'all'}.csv"
