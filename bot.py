import logging

from telegram import Update, BotCommand
from telegram.constants import ChatType, ParseMode
from telegram.error import Forbidden
from telegram.ext import (
    Application,
    CallbackQueryHandler,
    CommandHandler,
    ContextTypes,
    ConversationHandler,
    MessageHandler,
    filters,
)

import config
import views
from browse import BrowseError, BrowseState, MarketBrowser
from categories import Category, BasketballMarketType
from market_cache import MarketCache
from markets import MarketClient
from session_bridge import ChatContext, ChatGuild, ChatUser, SessionBridge

logger = logging.getLogger(__name__)

GENERIC_ERROR = "❌ Something went wrong. Please run /markets again."
BET_FAILED = "❌ Failed to load betting interface. Please try again."
NOT_YOUR_RESULTS = "These results belong to someone else. Run /markets to browse your own."
PRIVATE_CHAT_REQUIRED = "Open a private chat with me and press Start, then tap Bet again to get your betting link."
LINK_SENT = "📬 Betting link sent to your private chat."

BOT_COMMANDS = [
    BotCommand("markets", "Browse live sports betting markets"),
    BotCommand("cancel", "Cancel the current market search"),
    BotCommand("help", "All commands"),
]


def chat_identity(update):
    """Map the Telegram user and chat onto what the session service expects"""
    user = update.effective_user
    chat = update.effective_chat

    chat_user = ChatUser(
        id=str(user.id),
        username=user.username or user.full_name,
    )
    guild = ChatGuild()
    context = ChatContext()
    if chat is not None:
        if chat.type != ChatType.PRIVATE:
            guild = ChatGuild(id=str(chat.id), name=chat.title)
        context = ChatContext(channel_id=str(chat.id), channel_name=chat.title or chat.username)
    return chat_user, guild, context


class MarketsBot:
    """Telegram front end for the market browser"""

    def __init__(self, browser):
        self.browser = browser

    async def _fail(self, update, message):
        query = update.callback_query
        if query is not None:
            await query.edit_message_text(message)
        elif update.effective_message is not None:
            await update.effective_message.reply_text(message)

    async def _guarded(self, update, step, action):
        """Run one step of the flow; terminal failures end the conversation"""
        try:
            return await action()
        except BrowseError as e:
            logger.info(f"{step} stopped for user {update.effective_user.id}: {e.message}")
            await self._fail(update, e.message)
        except Exception:
            logger.exception(f"Error handling {step}")
            await self._fail(update, GENERIC_ERROR)
        return ConversationHandler.END

    async def start_cmd(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Welcome message"""
        await update.message.reply_text(
            "🏟️ <b>POLYMARKET SPORTS MARKETS</b>\n"
            f"{views.DIVIDER}\n"
            "Browse live NBA, MLB, NHL, soccer, UFC and esports markets,\n"
            "check the odds and get a secure link to place your bet.\n"
            f"{views.DIVIDER}\n"
            "Use /markets to get started.",
            parse_mode=ParseMode.HTML
        )

    async def help_cmd(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        text = "📖 <b>Commands</b>\n\n"
        text += "\n".join(f"/{c.command} - {c.description}" for c in BOT_COMMANDS)
        await update.message.reply_text(text, parse_mode=ParseMode.HTML)

    async def markets_cmd(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Entry point: show the category menu"""
        async def action():
            text, keyboard = views.category_menu()
            await update.message.reply_text(text, reply_markup=keyboard, parse_mode=ParseMode.HTML)
            return BrowseState.CATEGORY_SELECT
        return await self._guarded(update, "markets command", action)

    async def category_selected(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        query = update.callback_query
        await query.answer()

        async def action():
            category = Category.from_key(query.data.replace('category_', '', 1))
            label = category.label if category else "selected"
            await query.edit_message_text(f"⏳ Fetching {label} markets...")

            state = await self.browser.select_category(update.effective_user.id, category)
            if state is BrowseState.BASKETBALL_TYPE_SELECT:
                text, keyboard = views.basketball_type_menu()
            else:
                text, keyboard = views.keyword_prompt(self.browser.pending_label(update.effective_user.id))
            await query.edit_message_text(text, reply_markup=keyboard, parse_mode=ParseMode.HTML)
            return state
        return await self._guarded(update, "category selection", action)

    async def basketball_type_selected(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        query = update.callback_query
        await query.answer()

        async def action():
            market_type = BasketballMarketType.from_key(query.data.replace('nba_type_', '', 1))
            state = self.browser.select_basketball_type(update.effective_user.id, market_type)
            text, keyboard = views.keyword_prompt(self.browser.pending_label(update.effective_user.id))
            await query.edit_message_text(text, reply_markup=keyboard, parse_mode=ParseMode.HTML)
            return state
        return await self._guarded(update, "NBA type selection", action)

    async def keyword_received(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        async def action():
            page = self.browser.apply_keyword(update.effective_user.id, update.message.text)
            await update.message.reply_text(
                views.page_text(page),
                reply_markup=views.page_keyboard(page, update.effective_user.id),
                parse_mode=ParseMode.HTML
            )
            return ConversationHandler.END
        return await self._guarded(update, "keyword", action)

    async def show_all_selected(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        query = update.callback_query
        await query.answer()

        async def action():
            page = self.browser.apply_keyword(update.effective_user.id, 'all')
            await query.edit_message_text(
                views.page_text(page),
                reply_markup=views.page_keyboard(page, update.effective_user.id),
                parse_mode=ParseMode.HTML
            )
            return ConversationHandler.END
        return await self._guarded(update, "show all", action)

    async def page_selected(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """Previous/Next buttons, served from the owner's cache"""
        query = update.callback_query
        _, direction, owner_id, current = query.data.split('_')
        if query.from_user.id != int(owner_id):
            await query.answer(NOT_YOUR_RESULTS, show_alert=True)
            return
        await query.answer()

        async def action():
            page = self.browser.turn_page(query.from_user.id, direction, int(current))
            if page.page == int(current):
                return
            await query.edit_message_text(
                views.page_text(page),
                reply_markup=views.page_keyboard(page, update.effective_user.id),
                parse_mode=ParseMode.HTML
            )
        await self._guarded(update, "pagination", action)

    async def bet_selected(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        """
        Live odds plus a betting link, sent as a new message so the page stays.

        The link carries a one-time session token, so outside a private chat
        it goes to the user's private chat instead of the group.
        """
        query = update.callback_query
        market_id = query.data.replace('bet_', '', 1)
        user_id = update.effective_user.id
        chat = update.effective_chat
        private = chat is not None and chat.type == ChatType.PRIVATE
        target_chat_id = chat.id if private else user_id

        try:
            message = await context.bot.send_message(chat_id=target_chat_id, text="⏳ Loading live odds...")
        except Forbidden:
            logger.info(f"User {user_id} has no private chat with the bot, bet link not sent")
            await query.answer(PRIVATE_CHAT_REQUIRED, show_alert=True)
            return
        except Exception:
            logger.exception(f"Error starting bet detail for market {market_id}")
            await query.answer(BET_FAILED, show_alert=True)
            return
        await query.answer(None if private else LINK_SENT)

        try:
            user, guild, chat_context = chat_identity(update)
            detail = await self.browser.bet_detail(user, guild, market_id, chat_context)
            text, keyboard = views.bet_detail(detail)
            await message.edit_text(text, reply_markup=keyboard, parse_mode=ParseMode.HTML)
        except Exception:
            logger.exception(f"Error handling bet button for market {market_id}")
            await context.bot.send_message(chat_id=target_chat_id, text=BET_FAILED)

    async def cancel_cmd(self, update: Update, context: ContextTypes.DEFAULT_TYPE):
        await update.message.reply_text("👋 Market search cancelled. Use /markets to start again.")
        return ConversationHandler.END

    async def sweep_cache(self, context: ContextTypes.DEFAULT_TYPE):
        """Job: drop expired cache entries"""
        self.browser.cache.evict_expired()

    async def error_handler(self, update: object, context: ContextTypes.DEFAULT_TYPE):
        logger.error("Unhandled error while processing an update", exc_info=context.error)

    def conversation(self):
        return ConversationHandler(
            entry_points=[CommandHandler("markets", self.markets_cmd)],
            states={
                BrowseState.CATEGORY_SELECT: [
                    CallbackQueryHandler(self.category_selected, pattern=r"^category_"),
                ],
                BrowseState.BASKETBALL_TYPE_SELECT: [
                    CallbackQueryHandler(self.basketball_type_selected, pattern=r"^nba_type_"),
                ],
                BrowseState.KEYWORD_PROMPT: [
                    MessageHandler(filters.TEXT & ~filters.COMMAND, self.keyword_received),
                    CallbackQueryHandler(self.show_all_selected, pattern=r"^keyword_all$"),
                ],
            },
            fallbacks=[
                CommandHandler("cancel", self.cancel_cmd),
                CommandHandler("markets", self.markets_cmd),
            ],
            allow_reentry=True,
        )

    def register(self, application):
        application.add_handler(CommandHandler("start", self.start_cmd))
        application.add_handler(CommandHandler("help", self.help_cmd))
        application.add_handler(self.conversation())
        # Result pages outlive the conversation, so these are global
        application.add_handler(CallbackQueryHandler(self.page_selected, pattern=r"^page_(next|prev)_\d+_\d+$"))
        application.add_handler(CallbackQueryHandler(self.bet_selected, pattern=r"^bet_"))
        application.add_error_handler(self.error_handler)

        if application.job_queue is not None:
            application.job_queue.run_repeating(
                self.sweep_cache, interval=config.CACHE_SWEEP_INTERVAL, first=config.CACHE_SWEEP_INTERVAL
            )


async def post_init(application: Application):
    """Register the command list with Telegram after startup"""
    await application.bot.set_my_commands(BOT_COMMANDS)
    logger.info("Bot commands registered")


def build_application(token, browser):
    application = Application.builder().token(token).post_init(post_init).build()
    MarketsBot(browser).register(application)
    return application


def main():
    """Start the bot"""
    config.setup_logging()
    if not config.TELEGRAM_BOT_TOKEN:
        logger.error("TELEGRAM_BOT_TOKEN not found.")
        return

    browser = MarketBrowser(
        client=MarketClient(),
        cache=MarketCache(),
        bridge=SessionBridge(),
    )
    application = build_application(config.TELEGRAM_BOT_TOKEN, browser)

    logger.info("Markets bot starting...")
    application.run_polling()


if __name__ == '__main__':
    main()
