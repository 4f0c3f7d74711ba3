from aiogram.fsm.state import State, StatesGroup

class ActivateContractState(StatesGroup):
    waiting_for_start_date = State()
    waiting_for_end_date = State()

class PaymentState(StatesGroup):
    waiting_for_amount = State()
    waiting_for_method = State()
