"""One state machine per TUI view, keyed by :class:`ViewName`."""

from .base import Flow, ViewName
from .create_pr import CreatePrFlow
from .create_ticket_from_branch import CreateTicketFromBranchFlow
from .link_branch import LinkBranchFlow
from .main_menu import MainMenuFlow
from .my_tickets import MyTicketsFlow
from .new_ticket import NewTicketFlow
from .settings import SettingsFlow
from .setup import SetupFlow
from .start_work import StartWorkFlow
from .switch_branch import SwitchBranchFlow
from .update_ticket_status import UpdateTicketStatusFlow
from .widgets import Key

FLOWS: dict[ViewName, type[Flow]] = {
    ViewName.SETUP: SetupFlow,
    ViewName.MAIN: MainMenuFlow,
    ViewName.START_WORK: StartWorkFlow,
    ViewName.NEW_TICKET: NewTicketFlow,
    ViewName.MY_TICKETS: MyTicketsFlow,
    ViewName.SWITCH_BRANCH: SwitchBranchFlow,
    ViewName.LINK_BRANCH: LinkBranchFlow,
    ViewName.SETTINGS: SettingsFlow,
    ViewName.CREATE_TICKET_FROM_BRANCH: CreateTicketFromBranchFlow,
    ViewName.CREATE_PR: CreatePrFlow,
    ViewName.UPDATE_TICKET_STATUS: UpdateTicketStatusFlow,
}

__all__ = ["FLOWS", "Flow", "Key", "ViewName"]
