from cashier import create_app

app = create_app()
