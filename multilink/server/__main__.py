"""Run the layout service: python -m multilink.server"""

from .app import main

main()
