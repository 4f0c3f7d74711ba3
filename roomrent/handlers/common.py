from aiogram import Router
from aiogram.types import Message
from aiogram.filters import CommandStart, Command
from aiogram.fsm.context import FSMContext
from roomrent.config import config
from roomrent.utils.ui import UIEmojis, UIMessages

router = Router()

HELP_TEXT = (
    "/contracts [status] – list contracts\n"
    "/contract &lt;id&gt; – contract details\n"
    "/activate &lt;id&gt; – activate a draft\n"
    "/delete_contract &lt;id&gt; – delete a draft\n"
    "/terminate &lt;id&gt; [date] – end an active contract\n"
    "/invoice &lt;contract&gt; &lt;month&gt; &lt;year&gt; [electric] [water] – bill a period\n"
    "/invoices [contract] – list invoices\n"
    "/due &lt;invoice&gt; &lt;date&gt; – move an invoice due date\n"
    "/delete_invoice &lt;invoice&gt; – delete an invoice\n"
    "/pay &lt;invoice&gt; – record a payment\n"
    "/services &lt;building&gt; – services and unit prices\n"
    "/quote &lt;room&gt; &lt;hours&gt; – price a short stay\n"
    "/cancel – abort the current dialog"
)


@router.message(CommandStart())
async def cmd_start(message: Message, state: FSMContext):
    await state.clear()
    user_id = message.from_user.id
    if user_id in config.OWNER_IDS or user_id in config.ADMIN_IDS:
        text = UIMessages.header("Room rental", UIEmojis.BUILDING)
        text += HELP_TEXT
    else:
        text = UIMessages.warning("This bot is available to property operators only.")
    await message.answer(text)


@router.message(Command("help"))
async def cmd_help(message: Message):
    await message.answer(UIMessages.header("Commands", UIEmojis.INFO) + HELP_TEXT)


@router.message(Command("cancel"))
async def cmd_cancel(message: Message, state: FSMContext):
    await state.clear()
    await message.answer(UIMessages.success("Cancelled."))
