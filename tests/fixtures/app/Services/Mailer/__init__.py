class Mailer:
    transport = "smtp"
