"""
Run the POS Print Bridge: python -m pos_print_bridge
"""

from .app import main

if __name__ == '__main__':
    main()
