"""CSS styles for the Ramp Wallet application."""

CSS = """
Screen {
    background: #1e1e2e;
}

Header {
    background: #181825;
    text-style: bold;
    padding: 0 1;
    height: 3;
}

#connection-status {
    background: #181825;
    color: #a6adc8;
    padding: 0 2;
    height: 1;
    text-align: right;
    dock: top;
}

Footer {
    background: #181825;
    height: 2;
}

Button {
    background: transparent;
    color: #3b82f6;
    border: none;
    height: 3;
    min-height: 3;
    min-width: 20;
    padding: 0 1;
    margin: 0;
    content-align: center middle;
}

Button:focus {
    background: #3b82f6;
    color: #ffffff;
    text-style: bold underline reverse;
}

Button:disabled {
    color: #585b70;
}

Horizontal {
    height: auto;
    margin: 0 0 1 0;
}

Input, Select {
    margin: 0 0 1 0;
}

#core {
    padding: 1 2;
    height: auto;
}

#account-row {
    height: auto;
}

#account-select {
    width: 60;
}

.panel {
    border: round #3b82f6;
    padding: 0 1;
    margin: 0 0 1 0;
    height: auto;
}

.panel-title {
    text-style: bold;
    color: #cdd6f4;
    margin: 0 0 1 0;
}

.field-label {
    color: #a6adc8;
}

.field-value {
    color: #cdd6f4;
    margin: 0 0 1 0;
}

.total-donations {
    text-style: bold;
    color: #a6e3a1;
}

.tx-status {
    color: #f9e2af;
    height: auto;
}

.hidden {
    display: none;
}

LoadingScreen {
    align: center middle;
}

#loading-container, #connection-error-container {
    width: 70;
    height: auto;
    border: round #3b82f6;
    background: #181825;
    padding: 1 2;
}

#loading-title, #connection-error-title {
    text-style: bold;
    margin: 0 0 1 0;
}

ConnectionErrorScreen {
    align: center middle;
}
"""
