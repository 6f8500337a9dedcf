from qfpay_demo.main import main

main()
