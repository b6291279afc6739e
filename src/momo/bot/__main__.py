"""Entry point for running bot as module: python -m momo.bot"""

from momo.bot.bot import main

if __name__ == "__main__":
    main()
